from __future__ import annotations

import uuid
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from campus_roster.database import SessionLocal
from campus_roster.main import app
from campus_roster.routers import cron
from campus_roster.routers.deps import get_clock
from campus_roster.services.audit_service import AuditService
from campus_roster.services.tenant_service import TenantService

TODAY = date(2025, 3, 5)


@pytest.fixture
def client():
    app.dependency_overrides[get_clock] = lambda: (lambda: TODAY)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def group_id(client):
    suffix = uuid.uuid4().hex[:8]
    admin_db = SessionLocal()
    try:
        group = TenantService(admin_db).register_group(
            group_id=f"G{suffix}", code=f"GRP_{suffix}", name="Test schools", db_name=f"tenant_{suffix}"
        )
        return group.id
    finally:
        admin_db.close()


@pytest.fixture
def headers(group_id):
    return {"X-Group-Id": group_id, "X-School-Id": "S1", "X-Actor-Id": "admin-1"}


@pytest.fixture
def gate_duty_id(client, headers):
    slot = client.post("/roster/time-slots", headers=headers, json={
        "code": "morning_gate", "name": "Morning Gate", "start_time": "07:30", "end_time": "08:15",
    })
    assert slot.status_code == 201
    duty = client.post("/roster/duties", headers=headers, json={
        "code": "MORNING_GATE_DUTY", "name": "Morning Gate Duty",
        "allowed_assignee_kinds": ["teacher", "staff"],
        "default_time_slot_id": slot.json()["id"], "max_assignees": 4,
    })
    assert duty.status_code == 201
    return duty.json()["id"]


def _week_request(duty_id, assignee="T1"):
    return {
        "duty_id": duty_id,
        "assignees": [{"kind": "teacher", "id": assignee}],
        "start_date": "2025-03-03",
        "end_date": "2025-03-07",
        "recurrence_pattern": "daily",
    }


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_tenant_headers_are_required(client, headers):
    assert client.get("/roster/duties").status_code == 422

    response = client.get("/roster/duties", headers={**headers, "X-Group-Id": "nope"})
    assert response.status_code == 404
    assert response.json()["code"] == "tenant_not_found"


def test_catalog_crud(client, headers):
    created = client.post("/roster/time-slots", headers=headers, json={
        "code": "recess", "name": "Recess", "start_time": "12:00", "end_time": "12:45",
    })
    assert created.status_code == 201
    body = created.json()
    assert body["code"] == "RECESS"
    assert body["applies_to_days"] == ["mon", "tue", "wed", "thu", "fri", "sat"]

    bad = client.post("/roster/time-slots", headers=headers, json={
        "code": "broken", "name": "Broken", "start_time": "12:00", "end_time": "11:00",
    })
    assert bad.status_code == 422
    assert bad.json()["code"] == "validation_error"

    assert client.delete(f"/roster/time-slots/{body['id']}", headers=headers).json()["is_active"] is False
    assert client.get("/roster/time-slots", headers=headers).json() == []


def test_assignment_lifecycle(client, headers, gate_duty_id):
    created = client.post("/roster/assignments", headers=headers, json=_week_request(gate_duty_id))
    assert created.status_code == 201
    [assignment] = created.json()
    assert assignment["status"] == "pending_acceptance"
    occurrences = assignment["occurrences"]
    assert [o["date"] for o in occurrences] == [f"2025-03-0{d}" for d in range(3, 8)]

    preview = client.post("/roster/assignments/check-conflicts", headers=headers, json=_week_request(gate_duty_id))
    assert preview.json()["conflict_count"] == 5

    clash = client.post("/roster/assignments", headers=headers, json={
        **_week_request(gate_duty_id), "end_date": None, "recurrence_pattern": "none",
    })
    assert clash.status_code == 409
    assert clash.json()["code"] == "conflict"
    assert clash.json()["conflicts"]["assignees"][0]["dates"][0]["status"] == "conflict"

    monday, tuesday, _, _, friday = (o["id"] for o in occurrences)
    accepted = client.post(f"/roster/occurrences/{monday}/accept", headers=headers)
    assert accepted.json()["status"] == "accepted"
    assert client.post(f"/roster/occurrences/{friday}/accept", headers=headers).status_code == 200

    early = client.post(f"/roster/occurrences/{friday}/complete", headers=headers)
    assert early.status_code == 409
    assert early.json()["code"] == "invalid_state"

    done = client.post(f"/roster/occurrences/{monday}/complete", headers=headers, json={"notes": "Quiet morning"})
    assert done.status_code == 200
    assert done.json()["status"] == "completed"

    declined = client.post(f"/roster/occurrences/{tuesday}/decline", headers=headers, json={"reason": ""})
    assert declined.status_code == 422

    audit = client.get(f"/roster/assignments/{assignment['id']}/audit", headers=headers).json()
    assert [e["action"] for e in audit] == ["created", "accepted", "accepted", "completed"]


def test_cancel_endpoint(client, headers, gate_duty_id):
    [assignment] = client.post("/roster/assignments", headers=headers, json=_week_request(gate_duty_id)).json()
    url = f"/roster/assignments/{assignment['id']}/cancel"

    cancelled = client.post(url, headers=headers, json={"reason": "Timetable changed"})
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert {o["status"] for o in cancelled.json()["occurrences"]} == {"cancelled"}

    again = client.post(url, headers=headers, json={"reason": "Again"})
    assert again.status_code == 409


def test_other_school_sees_nothing(client, headers, gate_duty_id):
    [assignment] = client.post("/roster/assignments", headers=headers, json=_week_request(gate_duty_id)).json()
    other = {**headers, "X-School-Id": "S2"}

    assert client.get(f"/roster/assignments/{assignment['id']}", headers=other).status_code == 404
    assert client.get("/roster/assignments", headers=other).json() == []


def test_daily_sheet_and_cron(client, headers, group_id, gate_duty_id):
    [assignment] = client.post("/roster/assignments", headers=headers, json=_week_request(gate_duty_id)).json()
    monday, tuesday = (o["id"] for o in assignment["occurrences"][:2])
    client.post(f"/roster/occurrences/{monday}/accept", headers=headers)
    client.post(f"/roster/occurrences/{tuesday}/accept", headers=headers)

    sheet = client.get("/roster/reports/daily-sheet", headers=headers, params={"day": "2025-03-04"}).json()
    assert sheet["total"] == 1
    assert sheet["slots"][0]["name"] == "Morning Gate"
    assert sheet["slots"][0]["duties"][0]["status"] == "accepted"

    response = client.post("/cron/auto-complete")
    assert response.status_code == 200
    assert response.json()["result"][f"{group_id}/S1"] == 2

    occurrences = client.get(f"/roster/assignments/{assignment['id']}", headers=headers).json()["occurrences"]
    assert [o["status"] for o in occurrences[:2]] == ["completed", "completed"]


def test_config_endpoints(client, headers):
    config = client.get("/roster/config", headers=headers).json()
    assert config["student_max_duties_per_week"] == 3

    updated = client.put("/roster/config", headers=headers, json={"student_max_duties_per_week": 5})
    assert updated.json()["student_max_duties_per_week"] == 5

    assert client.put("/roster/config", headers=headers, json={"student_max_duties_per_week": 0}).status_code == 422


def test_update_endpoint(client, headers, gate_duty_id):
    [assignment] = client.post("/roster/assignments", headers=headers, json=_week_request(gate_duty_id)).json()
    url = f"/roster/assignments/{assignment['id']}"

    updated = client.put(url, headers=headers, json={"notes": "Bring a whistle", "supervisor_id": "T9"})
    assert updated.status_code == 200
    assert updated.json()["notes"] == "Bring a whistle"
    assert updated.json()["supervisor_id"] == "T9"

    assert client.put(url, headers=headers, json={"end_date": "2025-03-14"}).status_code == 422

    audit = client.get(f"{url}/audit", headers=headers).json()
    assert [e["action"] for e in audit] == ["created", "updated"]


def test_database_failure_is_a_generic_500(client, headers, gate_duty_id, monkeypatch):
    def failing_record(self, assignment, action, **values):
        raise OperationalError("INSERT INTO roster_audit_logs", {}, Exception("disk I/O error"))

    monkeypatch.setattr(AuditService, "record", failing_record)
    response = client.post("/roster/assignments", headers=headers, json=_week_request(gate_duty_id))
    monkeypatch.undo()

    assert response.status_code == 500
    assert response.json() == {"error": "Internal database error", "code": "database_error"}
    # the flushed assignment and its occurrences were rolled back
    assert client.get("/roster/assignments", headers=headers).json() == []
    assert client.post(
        "/roster/assignments/check-conflicts", headers=headers, json=_week_request(gate_duty_id)
    ).json()["conflict_count"] == 0


def test_cron_keeps_going_when_a_group_fails(client, headers, group_id, gate_duty_id, monkeypatch):
    suffix = uuid.uuid4().hex[:8]
    admin_db = SessionLocal()
    try:
        # sorts ahead of the healthy group
        broken = TenantService(admin_db).register_group(
            group_id=f"B{suffix}", code=f"AAA_{suffix}", name="Unreachable schools", db_name=f"broken_{suffix}"
        ).id
    finally:
        admin_db.close()

    real_open = cron.open_tenant_session

    def open_or_fail(database_url):
        if f"broken_{suffix}" in database_url:
            raise OperationalError("connect", {}, Exception("could not connect to server"))
        return real_open(database_url)

    monkeypatch.setattr(cron, "open_tenant_session", open_or_fail)
    [assignment] = client.post("/roster/assignments", headers=headers, json=_week_request(gate_duty_id)).json()
    client.post(f"/roster/occurrences/{assignment['occurrences'][0]['id']}/accept", headers=headers)

    response = client.post("/cron/auto-complete")

    assert response.status_code == 200
    result = response.json()["result"]
    assert "could not connect" in result[broken]["error"]
    assert result[f"{group_id}/S1"] == 1


def test_catalog_update_clears_with_null(client, headers, gate_duty_id):
    url = f"/roster/duties/{gate_duty_id}"

    cleared = client.put(url, headers=headers, json={"max_assignees": None})
    assert cleared.status_code == 200
    assert cleared.json()["max_assignees"] is None

    renamed = client.put(url, headers=headers, json={"name": "Gate Duty"})
    assert renamed.json()["max_assignees"] is None
    assert client.put(url, headers=headers, json={"name": None}).status_code == 422
