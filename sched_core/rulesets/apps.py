# sched_core/rulesets/apps.py
from django.apps import AppConfig


class RuleSetsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "sched_core.rulesets"

    def ready(self):
        # registers the lifecycle audit handlers on the event bus
        from sched_core.rulesets import subscribers  # noqa: F401
