# sched_core/rules/decisions.py
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from uuid import UUID

from sched_core.appointments.selectors import AppointmentSelector
from sched_core.common.clock import to_scheduling_clock
from sched_core.rules.engine.evaluator import RuleEvaluationResult, evaluate_rules
from sched_core.rules.selectors import RuleSelector
from sched_core.rulesets.exceptions import RuleSetPracticeMismatch
from sched_core.rulesets.selectors import RuleSetSelector

logger = logging.getLogger(__name__)


class RuleEngine:
    """
    Database-facing entry point of the decision engine.
    Import THIS from views and other apps:
        from sched_core.rules.decisions import RuleEngine
    """

    @staticmethod
    def check_slot(
        *,
        practice_id: UUID,
        slot: Mapping[str, Any],
        rule_set_id: Optional[UUID] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> RuleEvaluationResult:
        """
        Decide whether `slot` may be booked.

        rule_set_id=None evaluates the practice's active rule set; any other
        rule set (working copy or history) can be simulated explicitly.
        """
        if rule_set_id is None:
            rule_set = RuleSetSelector.get_active_rule_set(practice_id=practice_id)
        else:
            rule_set = RuleSetSelector.get_rule_set(rule_set_id=rule_set_id)
            if str(rule_set.practice_id) != str(practice_id):
                raise RuleSetPracticeMismatch(rule_set_id, practice_id)

        # time-of-day scopes compare slot and appointments on one clock
        slot = {**slot, "start": to_scheduling_clock(slot["start"]), "end": to_scheduling_clock(slot["end"])}

        rules = list(RuleSelector.list_rules(rule_set_id=rule_set.id, enabled_only=True))
        appointments = AppointmentSelector.fetch_relevant_appointments(practice_id=practice_id, slot=slot)

        evaluation_context = {
            **(context or {}),
            "practiceId": str(practice_id),
            "ruleSetId": str(rule_set.id),
        }

        result = evaluate_rules(rules, slot, appointments, evaluation_context)
        logger.debug(
            "slot %s-%s rule_set=%s -> %s (rule %s)",
            slot.get("start"),
            slot.get("end"),
            rule_set.id,
            result.action,
            result.rule_id,
        )
        return result
