from __future__ import annotations

import os
import tempfile

# Settings are read once per process: point every database at a scratch dir first.
_SCRATCH = tempfile.mkdtemp(prefix="campus_roster_tests_")
os.environ["ADMIN_DATABASE_URL"] = f"sqlite:///{_SCRATCH}/admin.db"
os.environ["TENANT_DATABASE_URL_TEMPLATE"] = f"sqlite:///{_SCRATCH}/{{db_name}}.db"
os.environ["CRON_SECRET"] = ""

from datetime import date, time

import pytest
from sqlalchemy.orm import Session

from campus_roster.database import create_db_engine, run_migrations
from campus_roster.models.duty_definition import DutyDefinition
from campus_roster.models.time_slot import TimeSlot
from campus_roster.schemas.assignment import AssigneeRef, AssignmentCreate
from campus_roster.services.catalog_service import CatalogService
from campus_roster.tenancy import TenantContext


@pytest.fixture
def tenant_engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'tenant.db'}")
    run_migrations(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(tenant_engine):
    session = Session(bind=tenant_engine, autoflush=False)
    yield session
    session.close()


@pytest.fixture
def ctx(db):
    return TenantContext(db=db, group_id="G1", school_id="S1", actor_id="admin-1")


@pytest.fixture
def catalog(ctx):
    return CatalogService(ctx)


@pytest.fixture
def morning_slot(catalog):
    return catalog.create_item(
        TimeSlot, code="morning_gate", name="Morning Gate",
        start_time=time(7, 30), end_time=time(8, 15),
    )


@pytest.fixture
def recess_slot(catalog):
    return catalog.create_item(
        TimeSlot, code="RECESS", name="Recess",
        start_time=time(12, 0), end_time=time(12, 45),
    )


@pytest.fixture
def gate_duty(catalog, morning_slot):
    return catalog.create_item(
        DutyDefinition, code="MORNING_GATE_DUTY", name="Morning Gate Duty",
        allowed_assignee_kinds=["teacher", "staff"],
        default_time_slot_id=morning_slot.id,
        min_assignees=1, max_assignees=4,
    )


@pytest.fixture
def recess_duty(catalog, recess_slot):
    return catalog.create_item(
        DutyDefinition, code="RECESS_DUTY", name="Recess Supervision",
        allowed_assignee_kinds=["teacher", "staff"], risk_level="medium",
        default_time_slot_id=recess_slot.id,
        min_assignees=1, max_assignees=6,
    )


@pytest.fixture
def monitor_duty(catalog, morning_slot):
    return catalog.create_item(
        DutyDefinition, code="CLASS_MONITOR", name="Class Monitor",
        category="student_leadership", allowed_assignee_kinds=["student"],
        default_time_slot_id=morning_slot.id,
        min_assignees=1, max_assignees=2, max_per_week_student=2,
    )


@pytest.fixture
def make_request():
    """Build an AssignmentCreate; a plain assignee id means a teacher, else (kind, id)"""

    def _make(duty, assignees, start: date, end: date = None, **fields) -> AssignmentCreate:
        refs = [
            AssigneeRef(kind="teacher", id=a) if isinstance(a, str) else AssigneeRef(kind=a[0], id=a[1])
            for a in assignees
        ]
        return AssignmentCreate(
            duty_id=duty.id,
            assignees=refs,
            start_date=start,
            end_date=end,
            **fields,
        )

    return _make
