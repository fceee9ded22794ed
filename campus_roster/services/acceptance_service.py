from datetime import date
from typing import Callable

from campus_roster.domain.workflow import ensure_transition, rollup_status
from campus_roster.exceptions import InvalidStateError, NotFoundError, ValidationError
from campus_roster.logger import get_logger
from campus_roster.models.audit_log import AuditAction
from campus_roster.models.roster_assignment import RosterAssignment, AssignmentStatus
from campus_roster.models.roster_assignment_date import RosterAssignmentDate, OccurrenceStatus
from campus_roster.services.assignment_service import utcnow
from campus_roster.services.audit_service import AuditService
from campus_roster.services.config_service import RosterConfigService
from campus_roster.tenancy import TenantContext

logger = get_logger(__name__)

# Parent statuses under which occurrences cannot move
FROZEN_ASSIGNMENT_STATUSES = (AssignmentStatus.PENDING_APPROVAL, AssignmentStatus.CANCELLED)


class AcceptanceService:
    """Per-occurrence workflow: accept, decline, complete"""

    def __init__(self, ctx: TenantContext, clock: Callable[[], date] = date.today):
        self.ctx = ctx
        self.db = ctx.db
        self.clock = clock
        self.audit = AuditService(ctx)

    def accept(self, occurrence_id: int, notes: str = None) -> RosterAssignmentDate:
        """pending_acceptance -> accepted"""
        occurrence = self._get_for_update(occurrence_id)
        old = occurrence.snapshot()
        ensure_transition(occurrence.status, OccurrenceStatus.ACCEPTED)

        occurrence.status = OccurrenceStatus.ACCEPTED
        occurrence.accepted_at = utcnow()
        occurrence.accepted_by = self.ctx.actor_id
        if notes:
            occurrence.notes = notes
        return self._finish(occurrence, AuditAction.ACCEPTED, old)

    def decline(self, occurrence_id: int, reason: str) -> RosterAssignmentDate:
        """pending_acceptance -> declined; a reason is mandatory"""
        if reason is None or not reason.strip():
            raise ValidationError("A reason is required to decline a duty")

        occurrence = self._get_for_update(occurrence_id)
        old = occurrence.snapshot()
        ensure_transition(occurrence.status, OccurrenceStatus.DECLINED)

        occurrence.status = OccurrenceStatus.DECLINED
        occurrence.declined_at = utcnow()
        occurrence.declined_by = self.ctx.actor_id
        occurrence.decline_reason = reason.strip()
        return self._finish(occurrence, AuditAction.DECLINED, old, reason=occurrence.decline_reason)

    def complete(self, occurrence_id: int, notes: str = None) -> RosterAssignmentDate:
        """accepted/scheduled -> completed, on or after the duty date"""
        occurrence = self._get_for_update(occurrence_id)
        old = occurrence.snapshot()
        ensure_transition(occurrence.status, OccurrenceStatus.COMPLETED)
        if occurrence.date > self.clock():
            raise InvalidStateError(
                f"Occurrence {occurrence_id} is on {occurrence.date.isoformat()} and cannot be completed yet"
            )

        self._mark_completed(occurrence, self.ctx.actor_id)
        if notes:
            occurrence.notes = notes
        return self._finish(occurrence, AuditAction.COMPLETED, old)

    def auto_complete_past(self) -> int:
        """
        Complete accepted/scheduled occurrences dated before today.

        Disabled by the school config flag auto_complete_past_duties.

        Returns:
            number of occurrences completed
        """
        config = RosterConfigService(self.ctx).get_config()
        if not config.auto_complete_past_duties:
            self.db.commit()
            return 0

        occurrences = self.db.query(RosterAssignmentDate).join(
            RosterAssignment,
            RosterAssignmentDate.roster_assignment_id == RosterAssignment.id
        ).filter(
            RosterAssignment.school_id == self.ctx.school_id,
            RosterAssignment.status.notin_(FROZEN_ASSIGNMENT_STATUSES),
            RosterAssignmentDate.status.in_((OccurrenceStatus.ACCEPTED, OccurrenceStatus.SCHEDULED)),
            RosterAssignmentDate.date < self.clock()
        ).order_by(RosterAssignmentDate.date).with_for_update(of=RosterAssignmentDate).all()

        touched = {}
        for occurrence in occurrences:
            old = occurrence.snapshot()
            self._mark_completed(occurrence, self.ctx.actor_id or "system")
            self.audit.record(
                occurrence.assignment,
                AuditAction.AUTO_COMPLETED,
                old=old,
                new=occurrence.snapshot(),
                occurrence=occurrence,
                performed_by=self.ctx.actor_id or "system",
            )
            touched[occurrence.roster_assignment_id] = occurrence.assignment

        for assignment in touched.values():
            assignment.status = rollup_status(o.status for o in assignment.occurrences)

        self.db.commit()
        if occurrences:
            logger.info(
                "Auto-completed %d occurrence(s) across %d assignment(s) for school %s",
                len(occurrences), len(touched), self.ctx.school_id
            )
        return len(occurrences)

    # ===== Helpers =====

    def _get_for_update(self, occurrence_id: int) -> RosterAssignmentDate:
        occurrence = self.db.query(RosterAssignmentDate).join(
            RosterAssignment,
            RosterAssignmentDate.roster_assignment_id == RosterAssignment.id
        ).filter(
            RosterAssignmentDate.id == occurrence_id,
            RosterAssignment.school_id == self.ctx.school_id
        ).with_for_update(of=RosterAssignmentDate).first()
        if not occurrence:
            raise NotFoundError(f"Occurrence {occurrence_id} not found")

        parent = occurrence.assignment
        if parent.status == AssignmentStatus.PENDING_APPROVAL:
            raise InvalidStateError(f"Assignment {parent.id} is still awaiting approval")
        return occurrence

    def _mark_completed(self, occurrence: RosterAssignmentDate, actor: str) -> None:
        occurrence.status = OccurrenceStatus.COMPLETED
        occurrence.completed_at = utcnow()
        occurrence.completed_by = actor

    def _finish(
        self,
        occurrence: RosterAssignmentDate,
        action: AuditAction,
        old: dict,
        reason: str = None
    ) -> RosterAssignmentDate:
        """Audit, roll the parent status up and commit"""
        assignment = occurrence.assignment
        old_parent_status = assignment.status
        assignment.status = rollup_status(o.status for o in assignment.occurrences)

        new = occurrence.snapshot()
        if assignment.status != old_parent_status:
            new["assignment_status"] = assignment.status.value
        self.audit.record(assignment, action, old=old, new=new, reason=reason, occurrence=occurrence)

        self.db.commit()
        self.db.refresh(occurrence)
        logger.info(
            "Occurrence %s %s by %s (assignment %s now %s)",
            occurrence.id, action.value, self.ctx.actor_id, assignment.id, assignment.status.value
        )
        return occurrence
