from fastapi import APIRouter, Depends, HTTPException, Header
from sqlalchemy.orm import Session
from typing import Optional

from campus_roster.database import get_db, open_tenant_session
from campus_roster.config import get_settings
from campus_roster.logger import get_logger
from campus_roster.models.roster_assignment import RosterAssignment
from campus_roster.routers.deps import get_clock
from campus_roster.services.acceptance_service import AcceptanceService
from campus_roster.services.tenant_service import TenantService
from campus_roster.tenancy import TenantContext

logger = get_logger(__name__)

router = APIRouter(prefix="/cron", tags=["Scheduled jobs"])


def verify_cron_secret(x_cron_secret: Optional[str] = Header(None)):
    """
    Check the cron secret (optional)

    Only enforced when CRON_SECRET is configured.
    """
    settings = get_settings()
    cron_secret = getattr(settings, 'cron_secret', None)

    if cron_secret and x_cron_secret != cron_secret:
        raise HTTPException(status_code=403, detail="Invalid cron secret")


@router.post("/auto-complete")
async def auto_complete_past_duties(
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
    _: None = Depends(verify_cron_secret)
):
    """
    Complete accepted/scheduled occurrences whose date has passed

    Runs once a day for every active school group and every school with
    assignments in it; schools with auto_complete_past_duties off are skipped.

    Cron setup:
    - Schedule: 30 0 * * *
    - Command: curl -X POST https://your-app/cron/auto-complete
    """
    tenant_service = TenantService(db)
    result = {}

    for group in tenant_service.get_active_groups():
        tenant_db = None
        try:
            tenant_db = open_tenant_session(tenant_service.database_url_for(group))
            school_ids = [
                row[0] for row in tenant_db.query(RosterAssignment.school_id).distinct().all()
            ]
            for school_id in school_ids:
                ctx = TenantContext(db=tenant_db, group_id=group.id, school_id=school_id, actor_id="system")
                completed = AcceptanceService(ctx, clock=clock).auto_complete_past()
                result[f"{group.id}/{school_id}"] = completed
        except Exception as e:
            # one broken tenant must not stop the sweep
            logger.exception("Auto-complete failed for group %s", group.id)
            if tenant_db is not None:
                tenant_db.rollback()
            result[group.id] = {"error": str(e)}
        finally:
            if tenant_db is not None:
                tenant_db.close()

    logger.info("Auto-complete finished: %s", result)
    return {
        "status": "completed",
        "result": result
    }
