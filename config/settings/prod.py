# config/settings/prod.py
import os

from .base import *  # noqa

DEBUG = False
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "").split(",") if h]

SECURE_CONTENT_TYPE_NOSNIFF = True
LOGGING["loggers"]["sched_core"]["level"] = os.getenv("SCHED_LOG_LEVEL", "WARNING")  # noqa: F405
