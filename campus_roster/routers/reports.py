from fastapi import APIRouter, Depends
from datetime import date
from typing import Optional

from campus_roster.models.duty_definition import AssigneeKind
from campus_roster.routers.deps import get_tenant_context
from campus_roster.services.report_service import ReportService
from campus_roster.tenancy import TenantContext

router = APIRouter(prefix="/roster/reports", tags=["Roster reports"])


@router.get("/daily-sheet")
async def daily_sheet(day: date, ctx: TenantContext = Depends(get_tenant_context)):
    """Everyone on duty on one day, grouped by time slot"""
    return ReportService(ctx).daily_sheet(day)


@router.get("/assignee")
async def assignee_duties(
    assignee_kind: AssigneeKind,
    assignee_id: str,
    start_date: date,
    end_date: Optional[date] = None,
    include_cancelled: bool = False,
    ctx: TenantContext = Depends(get_tenant_context)
):
    return ReportService(ctx).assignee_duties(
        assignee_kind,
        assignee_id,
        start_date,
        end_date,
        include_cancelled=include_cancelled
    )


@router.get("/workload")
async def workload_summary(
    start_date: date,
    end_date: date,
    assignee_kind: Optional[AssigneeKind] = None,
    ctx: TenantContext = Depends(get_tenant_context)
):
    return ReportService(ctx).workload_summary(start_date, end_date, assignee_kind)


@router.get("/supervised-students")
async def supervised_students(
    supervisor_id: str,
    start_date: date,
    end_date: Optional[date] = None,
    ctx: TenantContext = Depends(get_tenant_context)
):
    return ReportService(ctx).supervised_students(supervisor_id, start_date, end_date)


@router.get("/policy-warnings")
async def policy_warnings(ctx: TenantContext = Depends(get_tenant_context)):
    """High-risk duties without a required supervisor"""
    return ReportService(ctx).duty_policy_warnings()
