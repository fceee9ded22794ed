"""Closed state machines for assignments and their occurrences."""

from __future__ import annotations

from typing import Iterable

from campus_roster.exceptions import InvalidStateError
from campus_roster.models.roster_assignment import AssignmentStatus
from campus_roster.models.roster_assignment_date import OccurrenceStatus


OCCURRENCE_TRANSITIONS: dict[OccurrenceStatus, frozenset[OccurrenceStatus]] = {
    OccurrenceStatus.PENDING_ACCEPTANCE: frozenset({
        OccurrenceStatus.ACCEPTED,
        OccurrenceStatus.DECLINED,
        OccurrenceStatus.CANCELLED,
    }),
    # acceptance not required: already counts as accepted
    OccurrenceStatus.SCHEDULED: frozenset({
        OccurrenceStatus.COMPLETED,
        OccurrenceStatus.CANCELLED,
    }),
    OccurrenceStatus.ACCEPTED: frozenset({
        OccurrenceStatus.COMPLETED,
        OccurrenceStatus.CANCELLED,
    }),
    OccurrenceStatus.DECLINED: frozenset(),
    OccurrenceStatus.COMPLETED: frozenset(),
    OccurrenceStatus.CANCELLED: frozenset(),
}

CANCELLABLE_ASSIGNMENT_STATUSES = frozenset({
    AssignmentStatus.SCHEDULED,
    AssignmentStatus.PENDING_APPROVAL,
    AssignmentStatus.PENDING_ACCEPTANCE,
})


def can_transition(current: OccurrenceStatus, target: OccurrenceStatus) -> bool:
    return target in OCCURRENCE_TRANSITIONS[current]


def ensure_transition(current: OccurrenceStatus, target: OccurrenceStatus) -> None:
    """Raise InvalidStateError unless current -> target is allowed"""
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Occurrence cannot move from '{current.value}' to '{target.value}'"
        )


def initial_statuses(
    needs_approval: bool,
    needs_acceptance: bool,
) -> tuple[AssignmentStatus, OccurrenceStatus]:
    """Starting status of a new (or freshly approved) assignment and its occurrences"""
    occurrence_status = (
        OccurrenceStatus.PENDING_ACCEPTANCE if needs_acceptance else OccurrenceStatus.SCHEDULED
    )
    if needs_approval:
        return AssignmentStatus.PENDING_APPROVAL, occurrence_status
    if needs_acceptance:
        return AssignmentStatus.PENDING_ACCEPTANCE, occurrence_status
    return AssignmentStatus.SCHEDULED, occurrence_status


def rollup_status(statuses: Iterable[OccurrenceStatus]) -> AssignmentStatus:
    """Assignment status implied by its occurrences"""
    statuses = list(statuses)
    if any(s == OccurrenceStatus.PENDING_ACCEPTANCE for s in statuses):
        return AssignmentStatus.PENDING_ACCEPTANCE
    kept = [s for s in statuses if s != OccurrenceStatus.DECLINED]
    if not kept:
        return AssignmentStatus.DECLINED
    if all(s == OccurrenceStatus.COMPLETED for s in kept):
        return AssignmentStatus.COMPLETED
    return AssignmentStatus.SCHEDULED
