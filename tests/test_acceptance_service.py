from __future__ import annotations

from datetime import date

import pytest

from campus_roster.exceptions import InvalidStateError, NotFoundError, ValidationError
from campus_roster.models.audit_log import AuditAction
from campus_roster.models.duty_definition import DutyDefinition
from campus_roster.models.roster_assignment import AssignmentStatus
from campus_roster.models.roster_assignment_date import OccurrenceStatus
from campus_roster.services.acceptance_service import AcceptanceService
from campus_roster.services.assignment_service import AssignmentService
from campus_roster.services.config_service import RosterConfigService
from campus_roster.tenancy import TenantContext

MON = date(2025, 3, 3)
TUE = date(2025, 3, 4)
WED = date(2025, 3, 5)


def _create(ctx, duty, make_request, start=MON, end=None, **fields):
    pattern = "daily" if end else "none"
    [assignment] = AssignmentService(ctx).create_assignment(
        make_request(duty, ["T1"], start, end, recurrence_pattern=pattern, **fields)
    )
    return assignment


def _acceptance(ctx, today=WED) -> AcceptanceService:
    return AcceptanceService(ctx, clock=lambda: today)


def test_accept_records_who_and_when(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request)

    occurrence = _acceptance(ctx).accept(assignment.occurrences[0].id, notes="Will bring a vest")

    assert occurrence.status == OccurrenceStatus.ACCEPTED
    assert occurrence.accepted_by == "admin-1"
    assert occurrence.accepted_at is not None
    assert occurrence.notes == "Will bring a vest"
    assert occurrence.assignment.status == AssignmentStatus.SCHEDULED


def test_parent_stays_pending_until_every_date_is_answered(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request, MON, TUE)
    acceptance = _acceptance(ctx)
    monday, tuesday = assignment.occurrences

    acceptance.accept(monday.id)
    assert AssignmentService(ctx).get_assignment(assignment.id).status == AssignmentStatus.PENDING_ACCEPTANCE

    acceptance.accept(tuesday.id)
    assert AssignmentService(ctx).get_assignment(assignment.id).status == AssignmentStatus.SCHEDULED


def test_accept_twice_is_rejected(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request)
    acceptance = _acceptance(ctx)
    acceptance.accept(assignment.occurrences[0].id)

    with pytest.raises(InvalidStateError):
        acceptance.accept(assignment.occurrences[0].id)


def test_decline_needs_a_reason(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request)

    with pytest.raises(ValidationError):
        _acceptance(ctx).decline(assignment.occurrences[0].id, "")

    assert AssignmentService(ctx).get_occurrences(assignment.id)[0].status == OccurrenceStatus.PENDING_ACCEPTANCE


def test_declining_every_date_declines_the_assignment(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request, MON, TUE)
    acceptance = _acceptance(ctx)

    for occurrence in assignment.occurrences:
        acceptance.decline(occurrence.id, "Parent-teacher meetings")

    refreshed = AssignmentService(ctx).get_assignment(assignment.id)
    assert refreshed.status == AssignmentStatus.DECLINED
    assert refreshed.occurrences[0].decline_reason == "Parent-teacher meetings"
    assert refreshed.occurrences[0].declined_by == "admin-1"


def test_declined_dates_free_the_slot(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request)
    _acceptance(ctx).decline(assignment.occurrences[0].id, "Medical appointment")

    [replacement] = AssignmentService(ctx).create_assignment(make_request(gate_duty, ["T1"], MON))

    assert replacement.status == AssignmentStatus.PENDING_ACCEPTANCE


def test_cannot_complete_before_the_duty_date(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request, start=date(2025, 3, 6))
    acceptance = _acceptance(ctx)
    occurrence_id = assignment.occurrences[0].id
    acceptance.accept(occurrence_id)

    with pytest.raises(InvalidStateError):
        acceptance.complete(occurrence_id)


def test_complete_on_the_day(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request, start=WED)
    acceptance = _acceptance(ctx, today=WED)
    occurrence_id = assignment.occurrences[0].id
    acceptance.accept(occurrence_id)

    occurrence = acceptance.complete(occurrence_id, notes="All quiet")

    assert occurrence.status == OccurrenceStatus.COMPLETED
    assert occurrence.completed_at is not None
    assert occurrence.completed_by == "admin-1"
    assert occurrence.assignment.status == AssignmentStatus.COMPLETED


def test_complete_requires_acceptance(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request)

    with pytest.raises(InvalidStateError):
        _acceptance(ctx).complete(assignment.occurrences[0].id)


def test_scheduled_occurrence_completes_without_acceptance(ctx, catalog, morning_slot, make_request):
    duty = catalog.create_item(
        DutyDefinition, code="CORRIDOR", name="Corridor Supervision",
        default_time_slot_id=morning_slot.id, requires_acceptance=False,
    )
    assignment = _create(ctx, duty, make_request)

    occurrence = _acceptance(ctx).complete(assignment.occurrences[0].id)

    assert occurrence.status == OccurrenceStatus.COMPLETED


def test_completed_ignores_declined_dates_in_the_rollup(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request, MON, TUE)
    acceptance = _acceptance(ctx)
    monday, tuesday = assignment.occurrences

    acceptance.decline(monday.id, "Sick")
    acceptance.accept(tuesday.id)
    acceptance.complete(tuesday.id)

    assert AssignmentService(ctx).get_assignment(assignment.id).status == AssignmentStatus.COMPLETED


def test_unknown_or_foreign_occurrence_is_not_found(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request)
    other_school = TenantContext(db=ctx.db, group_id="G1", school_id="S2", actor_id="T1")

    with pytest.raises(NotFoundError):
        _acceptance(ctx).accept(999)
    with pytest.raises(NotFoundError):
        _acceptance(other_school).accept(assignment.occurrences[0].id)


def test_cancelled_occurrence_cannot_be_accepted(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request)
    AssignmentService(ctx).cancel_assignment(assignment.id, "Assembly moved")

    with pytest.raises(InvalidStateError):
        _acceptance(ctx).accept(assignment.occurrences[0].id)


def test_audit_follows_the_status_sequence(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request, start=MON)
    acceptance = _acceptance(ctx)
    occurrence_id = assignment.occurrences[0].id

    acceptance.accept(occurrence_id)
    acceptance.complete(occurrence_id)

    trail = AssignmentService(ctx).get_audit_trail(assignment.id)
    assert [e.action for e in trail] == [AuditAction.CREATED, AuditAction.ACCEPTED, AuditAction.COMPLETED]
    assert [(e.get_old_values().get("status"), e.get_new_values().get("status")) for e in trail[1:]] == [
        ("pending_acceptance", "accepted"),
        ("accepted", "completed"),
    ]
    assert all(e.occurrence_id == occurrence_id for e in trail[1:])
    assert trail[-1].get_new_values()["assignment_status"] == "completed"


# ===== Auto completion =====

def test_auto_complete_past_closes_confirmed_past_dates(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request, MON, date(2025, 3, 7))
    acceptance = _acceptance(ctx, today=date(2025, 3, 6))
    occurrences = assignment.occurrences
    for occurrence in occurrences[:4]:
        acceptance.accept(occurrence.id)

    # Mon-Wed are past and accepted; Thu is today; Fri still pending
    assert acceptance.auto_complete_past() == 3

    statuses = [o.status for o in AssignmentService(ctx).get_occurrences(assignment.id)]
    assert statuses == [OccurrenceStatus.COMPLETED] * 3 + [
        OccurrenceStatus.ACCEPTED, OccurrenceStatus.PENDING_ACCEPTANCE
    ]
    auto = [e for e in AssignmentService(ctx).get_audit_trail(assignment.id)
            if e.action == AuditAction.AUTO_COMPLETED]
    assert len(auto) == 3
    assert auto[0].performed_by == "admin-1"

    # nothing left to do on a second run
    assert acceptance.auto_complete_past() == 0


def test_auto_complete_runs_as_system_without_an_actor(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request)
    _acceptance(ctx).accept(assignment.occurrences[0].id)
    system = TenantContext(db=ctx.db, group_id="G1", school_id="S1")

    assert _acceptance(system).auto_complete_past() == 1

    occurrence = AssignmentService(ctx).get_occurrences(assignment.id)[0]
    assert occurrence.completed_by == "system"
    assert AssignmentService(ctx).get_assignment(assignment.id).status == AssignmentStatus.COMPLETED


def test_auto_complete_can_be_switched_off(ctx, gate_duty, make_request):
    assignment = _create(ctx, gate_duty, make_request)
    _acceptance(ctx).accept(assignment.occurrences[0].id)
    RosterConfigService(ctx).update_config(auto_complete_past_duties=False)

    assert _acceptance(ctx).auto_complete_past() == 0
    assert AssignmentService(ctx).get_occurrences(assignment.id)[0].status == OccurrenceStatus.ACCEPTED


def test_auto_complete_skips_assignments_awaiting_approval(ctx, catalog, morning_slot, make_request):
    duty = catalog.create_item(
        DutyDefinition, code="EXAM_INVIGILATION", name="Exam Invigilation",
        risk_level="high", requires_acceptance=False, default_time_slot_id=morning_slot.id,
    )
    assignment = _create(ctx, duty, make_request)
    assert assignment.status == AssignmentStatus.PENDING_APPROVAL

    assert _acceptance(ctx).auto_complete_past() == 0
