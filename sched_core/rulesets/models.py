# sched_core/rulesets/models.py
from __future__ import annotations

import uuid

from django.db import models
from django.db.models import Q

from sched_core.common.models import TimeStampedModel


class RuleSet(TimeStampedModel):
    """
    One versioned snapshot of a practice's scheduling configuration.

    - saved=False: the practice's single working copy (mutable)
    - saved=True : immutable history; at most one of these is_active
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    practice = models.ForeignKey("practices.Practice", on_delete=models.CASCADE, related_name="rule_sets")
    version = models.PositiveIntegerField()
    description = models.CharField(max_length=255)

    saved = models.BooleanField(default=False)
    is_active = models.BooleanField(default=False)

    # ids (str) of the rule sets this one was forked from
    parent_versions = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "rulesets_rule_set"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["practice"],
                condition=Q(saved=False),
                name="uq_ruleset_one_unsaved_per_practice",
            ),
            models.UniqueConstraint(
                fields=["practice"],
                condition=Q(is_active=True),
                name="uq_ruleset_one_active_per_practice",
            ),
        ]
        indexes = [
            models.Index(fields=["practice", "saved"]),
            models.Index(fields=["practice", "is_active"]),
        ]

    def __str__(self) -> str:
        return f"v{self.version} {self.description}"

    @property
    def parent_id(self):
        return self.parent_versions[0] if self.parent_versions else None


class RuleSetEvent(models.Model):
    """
    Append-only lifecycle record of a rule set (forked, saved, activated,
    discarded). rule_set_id is not a foreign key: a discarded rule set keeps
    its history.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    practice = models.ForeignKey("practices.Practice", on_delete=models.CASCADE, related_name="rule_set_events")
    rule_set_id = models.UUIDField(db_index=True)
    event_code = models.CharField(max_length=64, db_index=True)  # e.g. "ruleset.saved"

    occurred_at = models.DateTimeField(auto_now_add=True, db_index=True)
    metadata = models.JSONField(default=dict)

    class Meta:
        db_table = "rulesets_rule_set_event"
        ordering = ["-occurred_at"]
        indexes = [
            models.Index(fields=["practice", "occurred_at"]),
            models.Index(fields=["practice", "event_code"]),
        ]

    def __str__(self) -> str:
        return f"{self.event_code} {self.rule_set_id}"
