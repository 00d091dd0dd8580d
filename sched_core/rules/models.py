# sched_core/rules/models.py
from django.db import models

from sched_core.common.models import RuleSetScopedModel


class RuleAction(models.TextChoices):
    BLOCK = "BLOCK", "Block"
    ALLOW = "ALLOW", "Allow"


class Rule(RuleSetScopedModel):
    """
    One scheduling constraint:
    - condition is the JSON condition tree (see sched_core.rules.engine.conditions)
    - lower priority is evaluated first; the first matching rule decides
    - zones optionally carves out an allow-list after an ALLOW decision
    """
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    priority = models.IntegerField(default=0)
    action = models.CharField(max_length=8, choices=RuleAction.choices)
    enabled = models.BooleanField(default=True)
    message = models.CharField(max_length=500, blank=True, default="")

    condition = models.JSONField()
    zones = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = "rules_rule"
        ordering = ["priority", "created_at"]
        constraints = [
            models.UniqueConstraint(fields=["rule_set", "name"], name="uq_rule_rule_set_name"),
        ]
        indexes = [
            models.Index(fields=["rule_set", "enabled", "priority"]),
            models.Index(fields=["rule_set", "parent_id"]),
        ]

    def __str__(self) -> str:
        return self.name
