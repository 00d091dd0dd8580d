# sched_core/api/urls.py
from __future__ import annotations

from rest_framework.routers import DefaultRouter

from sched_core.entities.api.views import (
    AppointmentTypeViewSet,
    BaseScheduleViewSet,
    LocationViewSet,
    PractitionerViewSet,
)
from sched_core.practices.api.views import PracticeViewSet
from sched_core.rules.api.views import RuleViewSet
from sched_core.rulesets.api.views import RuleSetViewSet

router = DefaultRouter()

router.register(r"practices", PracticeViewSet, basename="practices")
router.register(r"rule-sets", RuleSetViewSet, basename="rule-sets")

# Copy-on-write entities
router.register(r"practitioners", PractitionerViewSet, basename="practitioners")
router.register(r"locations", LocationViewSet, basename="locations")
router.register(r"appointment-types", AppointmentTypeViewSet, basename="appointment-types")
router.register(r"base-schedules", BaseScheduleViewSet, basename="base-schedules")

router.register(r"rules", RuleViewSet, basename="rules")

urlpatterns = router.urls
