# sched_core/common/models.py
from __future__ import annotations

import uuid

from django.db import models


class TimeStampedModel(models.Model):
    """
    Standard timestamps for all entities.
    """
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class PracticeScopedModel(TimeStampedModel):
    """
    Rows owned directly by a practice (not versioned by rule set).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    practice_id = models.UUIDField(db_index=True)

    class Meta:
        abstract = True


class RuleSetScopedModel(TimeStampedModel):
    """
    Scheduling configuration row living inside exactly one rule set snapshot.

    parent_id points back to the row this one was copied from when the rule set
    was forked, so "the same logical entity" can be found in the working copy.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    rule_set = models.ForeignKey(
        "rulesets.RuleSet",
        on_delete=models.CASCADE,
        related_name="%(app_label)s_%(class)s_set",
    )
    parent_id = models.UUIDField(null=True, blank=True, db_index=True)

    class Meta:
        abstract = True
