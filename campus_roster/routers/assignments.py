from fastapi import APIRouter, Depends
from datetime import date
from typing import Optional

from campus_roster.models.duty_definition import AssigneeKind
from campus_roster.models.roster_assignment import AssignmentStatus
from campus_roster.routers.deps import get_clock, get_tenant_context
from campus_roster.schemas.assignment import (
    ApprovalRequest,
    AssignmentCreate,
    AssignmentDetail,
    AssignmentResponse,
    AssignmentUpdate,
    AuditEntryResponse,
    CancelRequest,
    ConflictCheckRequest,
    DeclineRequest,
    OccurrenceNote,
    OccurrenceResponse,
)
from campus_roster.services.acceptance_service import AcceptanceService
from campus_roster.services.assignment_service import AssignmentService
from campus_roster.tenancy import TenantContext

router = APIRouter(prefix="/roster", tags=["Roster assignments"])


# ===== Assignments =====

@router.post("/assignments/check-conflicts")
async def check_conflicts(
    payload: ConflictCheckRequest,
    ctx: TenantContext = Depends(get_tenant_context)
):
    """Preview conflicts without writing anything"""
    report = AssignmentService(ctx).check_conflicts(payload)
    return report.to_dict()


@router.post("/assignments", response_model=list[AssignmentDetail], status_code=201)
async def create_assignment(
    payload: AssignmentCreate,
    ctx: TenantContext = Depends(get_tenant_context)
):
    """
    Create assignments (one per assignee)

    - 409 with a conflict report when an assignee is already booked
    - force=true plus override_reason books anyway (audited as an override)
    """
    return AssignmentService(ctx).create_assignment(payload)


@router.get("/assignments", response_model=list[AssignmentResponse])
async def list_assignments(
    status: Optional[AssignmentStatus] = None,
    duty_id: Optional[int] = None,
    assignee_kind: Optional[AssigneeKind] = None,
    assignee_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    ctx: TenantContext = Depends(get_tenant_context)
):
    return AssignmentService(ctx).list_assignments(
        status=status,
        duty_id=duty_id,
        assignee_kind=assignee_kind,
        assignee_id=assignee_id,
        start_date=start_date,
        end_date=end_date
    )


@router.get("/assignments/{assignment_id}", response_model=AssignmentDetail)
async def get_assignment(assignment_id: int, ctx: TenantContext = Depends(get_tenant_context)):
    return AssignmentService(ctx).get_assignment(assignment_id)


@router.put("/assignments/{assignment_id}", response_model=AssignmentDetail)
async def update_assignment(
    assignment_id: int,
    payload: AssignmentUpdate,
    ctx: TenantContext = Depends(get_tenant_context)
):
    """
    Update supervisor, location, role, notes or priority

    Dates and time window cannot change here: cancel and create again.
    """
    return AssignmentService(ctx).update_assignment(
        assignment_id,
        payload.model_dump(exclude_unset=True)
    )


@router.post("/assignments/{assignment_id}/cancel", response_model=AssignmentDetail)
async def cancel_assignment(
    assignment_id: int,
    payload: CancelRequest,
    ctx: TenantContext = Depends(get_tenant_context)
):
    return AssignmentService(ctx).cancel_assignment(assignment_id, reason=payload.reason)


@router.post("/assignments/{assignment_id}/approve", response_model=AssignmentDetail)
async def approve_assignment(
    assignment_id: int,
    payload: ApprovalRequest,
    ctx: TenantContext = Depends(get_tenant_context)
):
    """Approve (or reject with approved=false) a pending_approval assignment"""
    return AssignmentService(ctx).approve_assignment(
        assignment_id,
        approved=payload.approved,
        reason=payload.reason
    )


@router.get("/assignments/{assignment_id}/audit", response_model=list[AuditEntryResponse])
async def get_audit_trail(assignment_id: int, ctx: TenantContext = Depends(get_tenant_context)):
    return AssignmentService(ctx).get_audit_trail(assignment_id)


# ===== Occurrences =====

@router.post("/occurrences/{occurrence_id}/accept", response_model=OccurrenceResponse)
async def accept_occurrence(
    occurrence_id: int,
    payload: Optional[OccurrenceNote] = None,
    ctx: TenantContext = Depends(get_tenant_context),
    clock=Depends(get_clock)
):
    notes = payload.notes if payload else None
    return AcceptanceService(ctx, clock=clock).accept(occurrence_id, notes=notes)


@router.post("/occurrences/{occurrence_id}/decline", response_model=OccurrenceResponse)
async def decline_occurrence(
    occurrence_id: int,
    payload: DeclineRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    clock=Depends(get_clock)
):
    return AcceptanceService(ctx, clock=clock).decline(occurrence_id, reason=payload.reason)


@router.post("/occurrences/{occurrence_id}/complete", response_model=OccurrenceResponse)
async def complete_occurrence(
    occurrence_id: int,
    payload: Optional[OccurrenceNote] = None,
    ctx: TenantContext = Depends(get_tenant_context),
    clock=Depends(get_clock)
):
    notes = payload.notes if payload else None
    return AcceptanceService(ctx, clock=clock).complete(occurrence_id, notes=notes)
