from __future__ import annotations

from datetime import date, time

import pytest

from campus_roster.domain.scheduling import Weekday
from campus_roster.exceptions import NotFoundError, ValidationError
from campus_roster.models.duty_definition import AssigneeKind, DutyDefinition
from campus_roster.models.location import Location
from campus_roster.models.roster_type import RosterType
from campus_roster.models.time_slot import TimeSlot
from campus_roster.services.assignment_service import AssignmentService
from campus_roster.services.catalog_service import CatalogService
from campus_roster.tenancy import TenantContext


def test_codes_are_upper_case_and_unique(catalog):
    location = catalog.create_item(Location, code=" main_gate ", name="Main Gate", capacity=4)

    assert location.code == "MAIN_GATE"
    assert location.is_active
    with pytest.raises(ValidationError):
        catalog.create_item(Location, code="MAIN_GATE", name="Another gate")


def test_code_and_name_are_required(catalog):
    with pytest.raises(ValidationError):
        catalog.create_item(RosterType, code="", name="Daily")
    with pytest.raises(ValidationError):
        catalog.create_item(RosterType, code="DAILY", name=" ")


def test_unknown_or_protected_fields_are_rejected(catalog):
    with pytest.raises(ValidationError):
        catalog.create_item(Location, code="HALL", name="Hall", colour="red")
    with pytest.raises(ValidationError):
        catalog.create_item(Location, code="HALL", name="Hall", school_id="S9")


def test_time_slot_needs_a_valid_window(catalog):
    with pytest.raises(ValidationError):
        catalog.create_item(TimeSlot, code="BROKEN", name="Broken", start_time=time(9, 0), end_time=time(8, 0))
    with pytest.raises(ValidationError):
        catalog.create_item(TimeSlot, code="HALF", name="Half", start_time=time(9, 0))


def test_time_slot_weekdays(catalog):
    slot = catalog.create_item(
        TimeSlot, code="SATURDAY_CLUB", name="Saturday Club",
        start_time=time(9, 0), end_time=time(11, 0), applies_to_days=["sat"],
    )

    assert slot.get_weekdays() == frozenset({Weekday.SAT})
    with pytest.raises(ValidationError):
        catalog.create_item(
            TimeSlot, code="NEVER", name="Never",
            start_time=time(9, 0), end_time=time(10, 0), applies_to_days=[],
        )


def test_negative_capacity_is_rejected(catalog):
    with pytest.raises(ValidationError):
        catalog.create_item(Location, code="ROOM", name="Room", capacity=-1)


def test_duty_bounds_and_kinds(catalog):
    with pytest.raises(ValidationError):
        catalog.create_item(DutyDefinition, code="BAD", name="Bad", min_assignees=3, max_assignees=2)
    with pytest.raises(ValidationError):
        catalog.create_item(DutyDefinition, code="BAD", name="Bad", min_assignees=0)
    with pytest.raises(ValidationError):
        catalog.create_item(DutyDefinition, code="BAD", name="Bad", allowed_assignee_kinds=[])
    with pytest.raises(ValidationError):
        catalog.create_item(DutyDefinition, code="BAD", name="Bad", allowed_assignee_kinds=["parent"])


def test_duty_defaults_to_teachers_and_staff(catalog):
    duty = catalog.create_item(DutyDefinition, code="LUNCH", name="Lunch Duty")

    assert duty.get_allowed_kinds() == frozenset({AssigneeKind.TEACHER, AssigneeKind.STAFF})
    assert duty.min_assignees == 1
    assert not duty.is_high_risk


def test_duty_references_must_be_active(catalog, morning_slot):
    catalog.deactivate_item(TimeSlot, morning_slot.id)

    with pytest.raises(NotFoundError):
        catalog.create_item(DutyDefinition, code="GATE", name="Gate", default_time_slot_id=morning_slot.id)
    with pytest.raises(NotFoundError):
        catalog.create_item(DutyDefinition, code="GATE", name="Gate", default_location_id=404)


def test_soft_delete_hides_rows(catalog):
    first = catalog.create_item(RosterType, code="DAILY", name="Daily Duties")
    catalog.create_item(RosterType, code="EXAM", name="Exam Duties")

    catalog.deactivate_item(RosterType, first.id)

    assert [r.code for r in catalog.list_items(RosterType)] == ["EXAM"]
    assert [r.code for r in catalog.list_items(RosterType, include_inactive=True)] == ["DAILY", "EXAM"]
    assert catalog.get_item(RosterType, first.id).is_active is False
    with pytest.raises(NotFoundError):
        catalog.get_active_item(RosterType, first.id)


def test_time_slots_list_in_display_order(catalog, recess_slot, morning_slot):
    assert [s.code for s in catalog.list_items(TimeSlot)] == ["MORNING_GATE", "RECESS"]


def test_update_keeps_the_code(catalog):
    location = catalog.create_item(Location, code="LIBRARY", name="Library")

    updated = catalog.update_item(Location, location.id, name="Main Library", floor="2")
    assert updated.name == "Main Library"
    assert updated.floor == "2"

    with pytest.raises(ValidationError):
        catalog.update_item(Location, location.id, code="BOOKS")


def test_failed_update_leaves_the_row_unchanged(ctx, catalog):
    duty = catalog.create_item(DutyDefinition, code="LUNCH", name="Lunch Duty", max_assignees=3)

    with pytest.raises(ValidationError):
        catalog.update_item(DutyDefinition, duty.id, max_assignees=0)

    assert catalog.get_item(DutyDefinition, duty.id).max_assignees == 3


def test_update_can_clear_optional_fields(catalog, morning_slot):
    hall = catalog.create_item(Location, code="HALL", name="Hall")
    duty = catalog.create_item(
        DutyDefinition, code="LUNCH", name="Lunch Duty",
        max_assignees=3, default_location_id=hall.id, default_time_slot_id=morning_slot.id,
    )

    cleared = catalog.update_item(DutyDefinition, duty.id, max_assignees=None, default_location_id=None)

    assert cleared.max_assignees is None
    assert cleared.default_location_id is None
    assert cleared.default_time_slot_id == morning_slot.id


def test_required_fields_cannot_be_cleared(catalog, morning_slot):
    duty = catalog.create_item(DutyDefinition, code="LUNCH", name="Lunch Duty")

    with pytest.raises(ValidationError):
        catalog.update_item(DutyDefinition, duty.id, name=None)
    with pytest.raises(ValidationError):
        catalog.update_item(DutyDefinition, duty.id, min_assignees=None)
    with pytest.raises(ValidationError):
        catalog.update_item(DutyDefinition, duty.id, allowed_assignee_kinds=None)
    with pytest.raises(ValidationError):
        catalog.update_item(TimeSlot, morning_slot.id, start_time=None)

    assert catalog.get_item(DutyDefinition, duty.id).min_assignees == 1


def test_slot_times_are_frozen_while_in_use(ctx, catalog, morning_slot, gate_duty, make_request):
    AssignmentService(ctx).create_assignment(make_request(gate_duty, ["T1"], date(2025, 3, 3)))

    with pytest.raises(ValidationError):
        catalog.update_item(TimeSlot, morning_slot.id, end_time=time(8, 30))

    renamed = catalog.update_item(TimeSlot, morning_slot.id, name="Gate (morning)")
    assert renamed.end_time == time(8, 15)


def test_catalogs_are_scoped_to_the_school(ctx, catalog, morning_slot):
    other = CatalogService(TenantContext(db=ctx.db, group_id="G1", school_id="S2"))

    assert other.list_items(TimeSlot) == []
    with pytest.raises(NotFoundError):
        other.get_item(TimeSlot, morning_slot.id)

    # the same code is free in another school
    other.create_item(TimeSlot, code="MORNING_GATE", name="Gate", start_time=time(7, 0), end_time=time(7, 45))
