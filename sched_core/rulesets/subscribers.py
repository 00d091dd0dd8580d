# sched_core/rulesets/subscribers.py
from __future__ import annotations

from uuid import UUID

from sched_core.common.events import (
    RULESET_ACTIVATED,
    RULESET_DISCARDED,
    RULESET_FORKED,
    RULESET_SAVED,
    subscribe,
)
from sched_core.rulesets.models import RuleSetEvent


def record_event(event_code: str, payload: dict) -> RuleSetEvent:
    metadata = {k: v for k, v in payload.items() if k not in ("practice_id", "rule_set_id")}
    return RuleSetEvent.objects.create(
        practice_id=UUID(payload["practice_id"]),
        rule_set_id=UUID(payload["rule_set_id"]),
        event_code=event_code,
        metadata=metadata,
    )


@subscribe(RULESET_FORKED)
def on_rule_set_forked(payload: dict) -> None:
    record_event(RULESET_FORKED, payload)


@subscribe(RULESET_SAVED)
def on_rule_set_saved(payload: dict) -> None:
    record_event(RULESET_SAVED, payload)


@subscribe(RULESET_ACTIVATED)
def on_rule_set_activated(payload: dict) -> None:
    record_event(RULESET_ACTIVATED, payload)


@subscribe(RULESET_DISCARDED)
def on_rule_set_discarded(payload: dict) -> None:
    record_event(RULESET_DISCARDED, payload)
