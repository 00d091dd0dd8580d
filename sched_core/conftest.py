# sched_core/conftest.py
import pytest
from rest_framework.test import APIClient

from sched_core.practices.services import PracticeService
from sched_core.rulesets.models import RuleSet


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def practice(db):
    return PracticeService.create_practice(name="Praxis Dr. Test")


@pytest.fixture
def initial_rule_set(practice):
    """The saved + active v1 every practice starts with."""
    return RuleSet.objects.get(practice=practice, version=1)


@pytest.fixture
def scope(practice, initial_rule_set):
    """Keyword scope for store mutations against the initial rule set."""
    return {"practice_id": practice.id, "source_rule_set_id": initial_rule_set.id}
