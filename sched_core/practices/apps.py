# sched_core/practices/apps.py
from django.apps import AppConfig


class PracticesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "sched_core.practices"
