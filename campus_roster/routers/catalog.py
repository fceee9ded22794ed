"""
Master catalog routes

The six catalogs share one CRUD shape: list / get / create / update /
deactivate (soft delete).
"""
from fastapi import APIRouter, Depends

from campus_roster.models.duty_category import DutyCategory
from campus_roster.models.duty_definition import DutyDefinition
from campus_roster.models.duty_role import DutyRole
from campus_roster.models.location import Location
from campus_roster.models.roster_type import RosterType
from campus_roster.models.time_slot import TimeSlot
from campus_roster.routers.deps import get_tenant_context
from campus_roster.schemas.catalog import (
    RosterTypeCreate, RosterTypeUpdate, RosterTypeResponse,
    DutyCategoryCreate, DutyCategoryUpdate, DutyCategoryResponse,
    TimeSlotCreate, TimeSlotUpdate, TimeSlotResponse,
    LocationCreate, LocationUpdate, LocationResponse,
    DutyRoleCreate, DutyRoleUpdate, DutyRoleResponse,
    DutyCreate, DutyUpdate, DutyResponse,
)
from campus_roster.services.catalog_service import CatalogService
from campus_roster.tenancy import TenantContext

router = APIRouter(prefix="/roster", tags=["Roster catalogs"])


def register_catalog_routes(path: str, model, create_schema, update_schema, response_schema):
    """Add the CRUD endpoints of one catalog to the router"""
    label = path.strip("/").replace("-", "_")

    @router.get(path, response_model=list[response_schema], name=f"list_{label}")
    async def list_items(
        include_inactive: bool = False,
        ctx: TenantContext = Depends(get_tenant_context)
    ):
        return CatalogService(ctx).list_items(model, include_inactive=include_inactive)

    @router.get(path + "/{item_id}", response_model=response_schema, name=f"get_{label}")
    async def get_item(item_id: int, ctx: TenantContext = Depends(get_tenant_context)):
        return CatalogService(ctx).get_item(model, item_id)

    @router.post(path, response_model=response_schema, status_code=201, name=f"create_{label}")
    async def create_item(payload: create_schema, ctx: TenantContext = Depends(get_tenant_context)):
        return CatalogService(ctx).create_item(model, **payload.model_dump())

    @router.put(path + "/{item_id}", response_model=response_schema, name=f"update_{label}")
    async def update_item(
        item_id: int,
        payload: update_schema,
        ctx: TenantContext = Depends(get_tenant_context)
    ):
        return CatalogService(ctx).update_item(model, item_id, **payload.model_dump(exclude_unset=True))

    @router.delete(path + "/{item_id}", response_model=response_schema, name=f"deactivate_{label}")
    async def deactivate_item(item_id: int, ctx: TenantContext = Depends(get_tenant_context)):
        return CatalogService(ctx).deactivate_item(model, item_id)


register_catalog_routes("/types", RosterType, RosterTypeCreate, RosterTypeUpdate, RosterTypeResponse)
register_catalog_routes("/categories", DutyCategory, DutyCategoryCreate, DutyCategoryUpdate, DutyCategoryResponse)
register_catalog_routes("/time-slots", TimeSlot, TimeSlotCreate, TimeSlotUpdate, TimeSlotResponse)
register_catalog_routes("/locations", Location, LocationCreate, LocationUpdate, LocationResponse)
register_catalog_routes("/roles", DutyRole, DutyRoleCreate, DutyRoleUpdate, DutyRoleResponse)
register_catalog_routes("/duties", DutyDefinition, DutyCreate, DutyUpdate, DutyResponse)
