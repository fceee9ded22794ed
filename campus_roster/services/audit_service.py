from typing import Optional

from campus_roster.models.audit_log import AuditLogEntry, AuditAction
from campus_roster.models.roster_assignment import RosterAssignment
from campus_roster.models.roster_assignment_date import RosterAssignmentDate
from campus_roster.tenancy import TenantContext


class AuditService:
    """Roster audit log (append only)"""

    def __init__(self, ctx: TenantContext):
        self.ctx = ctx
        self.db = ctx.db

    def record(
        self,
        assignment: RosterAssignment,
        action: AuditAction,
        old: dict = None,
        new: dict = None,
        reason: str = None,
        occurrence: Optional[RosterAssignmentDate] = None,
        performed_by: str = None
    ) -> AuditLogEntry:
        """
        Append an entry in the caller's transaction.

        The caller commits; a rolled back mutation leaves no entry behind.
        """
        entry = AuditLogEntry(
            school_id=self.ctx.school_id,
            roster_assignment_id=assignment.id,
            occurrence_id=occurrence.id if occurrence is not None else None,
            action=action,
            reason=reason,
            performed_by=performed_by or self.ctx.actor_id,
        )
        entry.set_values(old, new)
        self.db.add(entry)
        return entry

    def get_trail(self, assignment_id: int) -> list[AuditLogEntry]:
        """Entries of one assignment, oldest first"""
        return self.db.query(AuditLogEntry).filter(
            AuditLogEntry.school_id == self.ctx.school_id,
            AuditLogEntry.roster_assignment_id == assignment_id
        ).order_by(AuditLogEntry.id).all()
