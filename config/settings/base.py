# config/settings/base.py
from pathlib import Path
import os
from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent.parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "unsafe-dev-key")
DEBUG = os.getenv("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [
    # Django
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",

    # Third-party
    "rest_framework",
    "drf_spectacular",

    # Domain apps (modular monolith)
    "sched_core.common.apps.CommonConfig",
    "sched_core.practices.apps.PracticesConfig",
    "sched_core.rulesets.apps.RuleSetsConfig",
    "sched_core.entities.apps.EntitiesConfig",
    "sched_core.rules.apps.RulesConfig",
    "sched_core.appointments.apps.AppointmentsConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
            ],
        },
    }
]

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.getenv("DB_NAME", "sched"),
        "USER": os.getenv("DB_USER", "sched"),
        "PASSWORD": os.getenv("DB_PASSWORD", "sched"),
        "HOST": os.getenv("DB_HOST", "127.0.0.1"),
        "PORT": os.getenv("DB_PORT", "5432"),
    }
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    # No authentication layer
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.AllowAny",
    ),
    "UNAUTHENTICATED_USER": None,
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",

    # Standard error envelope
    "EXCEPTION_HANDLER": "sched_core.common.api.exceptions.api_exception_handler",

    "DEFAULT_PAGINATION_CLASS": "sched_core.common.api.pagination.DefaultPagination",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Scheduling Rules API",
    "DESCRIPTION": "Scheduling rule engine with copy-on-write rule sets",
    "VERSION": "0.1.0",

    "COMPONENT_SPLIT_REQUEST": True,
    "SORT_OPERATIONS": True,
    "SORT_OPERATION_PARAMETERS": True,
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "sched_core": {
            "handlers": ["console"],
            "level": os.getenv("SCHED_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}

# Scheduling
SCHEDULING_APPOINTMENT_WINDOW_HOURS = int(os.getenv("SCHEDULING_APPOINTMENT_WINDOW_HOURS", "4"))
SCHEDULING_UNSAVED_DESCRIPTION = "Unsaved changes"
SCHEDULING_INITIAL_DESCRIPTION = "Initial configuration"
SCHEDULING_PAGE_SIZE = int(os.getenv("SCHEDULING_PAGE_SIZE", "50"))
# slots and appointments are compared on this wall clock
SCHEDULING_TIME_ZONE = os.getenv("SCHEDULING_TIME_ZONE", TIME_ZONE)
SCHEDULING_VERSION_GRAPH_COLORS = [
    "#010A40",
    "#FC42C9",
    "#3D91F0",
    "#29E3C1",
    "#C5A15A",
    "#FA7978",
    "#5D6280",
    "#5AC58D",
    "#5C5AC5",
    "#EB7340",
]
