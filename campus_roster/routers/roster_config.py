from fastapi import APIRouter, Depends

from campus_roster.routers.deps import get_tenant_context
from campus_roster.schemas.config import RosterConfigResponse, RosterConfigUpdate
from campus_roster.services.config_service import RosterConfigService
from campus_roster.tenancy import TenantContext

router = APIRouter(prefix="/roster/config", tags=["Roster config"])


@router.get("", response_model=RosterConfigResponse)
async def get_config(ctx: TenantContext = Depends(get_tenant_context)):
    """School roster policy (defaults are created on first read)"""
    config = RosterConfigService(ctx).get_config()
    ctx.db.commit()
    return config


@router.put("", response_model=RosterConfigResponse)
async def update_config(
    payload: RosterConfigUpdate,
    ctx: TenantContext = Depends(get_tenant_context)
):
    return RosterConfigService(ctx).update_config(**payload.model_dump(exclude_unset=True))
