# sched_core/rules/tests/test_rules_api.py
import pytest

from sched_core.rules.models import Rule

pytestmark = pytest.mark.django_db

ALWAYS = {"type": "AND", "children": []}
EVENINGS = {"type": "Property", "entity": "Slot", "attr": "doctor", "op": "IN", "value": ["doc-1"], "start": "18:00", "end": "22:00"}


def scoped(practice, rule_set_id, **payload):
    return {"practice_id": str(practice.id), "source_rule_set_id": str(rule_set_id), **payload}


def create_rule(api_client, practice, rule_set_id, **payload):
    r = api_client.post("/api/v1/rules/", scoped(practice, rule_set_id, **payload), format="json")
    assert r.status_code == 201, r.data
    return r.data


def test_create_list_and_update(api_client, practice, initial_rule_set):
    created = create_rule(
        api_client, practice, initial_rule_set.id, name="No evenings", action="BLOCK", priority=3, condition=EVENINGS
    )
    working_id = created["ruleSetId"]

    r = api_client.get("/api/v1/rules/", {"rule_set_id": working_id})
    assert r.status_code == 200, r.data
    assert [(x["name"], x["priority"], x["enabled"]) for x in r.data] == [("No evenings", 3, True)]
    assert r.data[0]["condition"] == EVENINGS

    r = api_client.patch(
        f"/api/v1/rules/{created['entityId']}/", scoped(practice, working_id, message="closed"), format="json"
    )
    assert r.status_code == 200, r.data
    rule = Rule.objects.get(id=created["entityId"])
    assert rule.message == "closed"
    # untouched fields keep their values
    assert (rule.priority, rule.condition) == (3, EVENINGS)


def test_invalid_condition_is_reported_with_paths(api_client, practice, initial_rule_set):
    r = api_client.post(
        "/api/v1/rules/",
        scoped(
            practice,
            initial_rule_set.id,
            name="broken",
            action="BLOCK",
            condition={"type": "AND", "children": [{"type": "Count", "filter": {}, "op": "<"}]},
        ),
        format="json",
    )
    assert r.status_code == 400
    assert r.data["error"]["code"] == "condition_validation_error"
    assert r.data["error"]["details"]["errors"] == ["root.children[0]: missing or invalid 'value' field for Count"]


def test_validate_endpoint_never_writes(api_client):
    r = api_client.post("/api/v1/rules/validate/", {"condition": {"type": "NOT"}}, format="json")
    assert r.status_code == 200, r.data
    assert r.data == {"valid": False, "errors": ["root: missing 'child' field for NOT"]}

    r = api_client.post("/api/v1/rules/validate/", {"condition": ALWAYS}, format="json")
    assert r.data == {"valid": True, "errors": []}
    assert not Rule.objects.exists()


def test_toggle_copy_reorder_delete(api_client, practice, initial_rule_set):
    a = create_rule(api_client, practice, initial_rule_set.id, name="a", action="BLOCK", priority=1, condition=ALWAYS)
    working_id = a["ruleSetId"]
    b = create_rule(api_client, practice, working_id, name="b", action="ALLOW", priority=2, condition=ALWAYS)

    r = api_client.post(f"/api/v1/rules/{a['entityId']}/toggle/", scoped(practice, working_id), format="json")
    assert r.status_code == 200, r.data
    assert r.data["enabled"] is False

    r = api_client.post(
        f"/api/v1/rules/{b['entityId']}/copy/", scoped(practice, working_id, new_name="b copy"), format="json"
    )
    assert r.status_code == 201, r.data

    r = api_client.post(
        "/api/v1/rules/reorder/",
        scoped(practice, working_id, ordering=[{"rule_id": b["entityId"], "priority": 0}]),
        format="json",
    )
    assert r.status_code == 200, r.data

    r = api_client.get("/api/v1/rules/", {"rule_set_id": working_id, "enabled_only": "true"})
    assert [x["name"] for x in r.data] == ["b", "b copy"]

    r = api_client.delete(f"/api/v1/rules/{a['entityId']}/", scoped(practice, working_id), format="json")
    assert r.status_code == 200, r.data

    r = api_client.delete(f"/api/v1/rules/{a['entityId']}/", scoped(practice, working_id), format="json")
    assert r.status_code == 404
    assert r.data["error"]["code"] == "rule_not_found"


def test_check_slot(api_client, practice, initial_rule_set):
    created = create_rule(
        api_client, practice, initial_rule_set.id, name="No evenings", action="BLOCK", message="closed", condition=EVENINGS
    )
    evening = {"start": "2025-01-06T19:00:00Z", "end": "2025-01-06T19:30:00Z", "doctor": "doc-1"}

    # active rule set (v1) has no rules yet
    r = api_client.post("/api/v1/rules/check-slot/", {"practice_id": str(practice.id), "slot": evening}, format="json")
    assert r.status_code == 200, r.data
    assert r.data == {"action": "ALLOW", "message": "no matching rules"}

    r = api_client.post(
        "/api/v1/rules/check-slot/",
        {"practice_id": str(practice.id), "rule_set_id": created["ruleSetId"], "slot": evening},
        format="json",
    )
    assert r.data == {"action": "BLOCK", "message": "closed", "ruleId": created["entityId"], "ruleName": "No evenings"}

    r = api_client.post(
        "/api/v1/rules/check-slot/",
        {"practice_id": str(practice.id), "rule_set_id": created["ruleSetId"], "slot": {**evening, "start": "2025-01-06T09:00:00Z"}},
        format="json",
    )
    assert r.data["action"] == "ALLOW"


def test_check_slot_bad_datetime(api_client, practice, initial_rule_set):
    create_rule(api_client, practice, initial_rule_set.id, name="r", action="BLOCK", condition=EVENINGS)
    r = api_client.post(
        "/api/v1/rules/check-slot/",
        {
            "practice_id": str(practice.id),
            "rule_set_id": str(Rule.objects.get().rule_set_id),
            "slot": {"start": "yesterday", "end": "today"},
        },
        format="json",
    )
    assert r.status_code == 400
    assert r.data["error"]["code"] == "invalid_datetime_format"


def test_check_slot_requires_start_and_end(api_client, practice):
    r = api_client.post(
        "/api/v1/rules/check-slot/", {"practice_id": str(practice.id), "slot": {"start": "2025-01-06T09:00:00Z"}}, format="json"
    )
    assert r.status_code == 400
    assert r.data["error"]["code"] == "validation_error"
