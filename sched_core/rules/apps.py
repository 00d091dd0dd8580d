# sched_core/rules/apps.py
from django.apps import AppConfig


class RulesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "sched_core.rules"
