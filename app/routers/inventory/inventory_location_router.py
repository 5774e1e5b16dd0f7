from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.location_type import LocationType
from app.schemas.auth.actor_schemas import Actor
from app.utils.check_roles import require_role, READ_ROLES, WRITE_ROLES
from app.utils.response import success_response, APIResponse
from app.services.inventory import inventory_location_service as locations
from app.schemas.inventory.location_schemas import (
    InventoryLocationCreate,
    InventoryLocationUpdate,
    InventoryLocationOut,
    InventoryLocationListData,
)

router = APIRouter(
    prefix="/inventory/locations",
    tags=["Inventory Locations"],
)


@router.post("/", response_model=APIResponse[InventoryLocationOut], status_code=201)
async def create_location_api(
    payload: InventoryLocationCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_role(WRITE_ROLES)),
):
    location = await locations.create_location(db, payload, actor)
    return success_response("Location created", location)


@router.get("/", response_model=APIResponse[InventoryLocationListData])
async def list_locations_api(
    active_only: bool = Query(True),
    type: LocationType | None = Query(None),
    search: str | None = Query(None, min_length=1, description="Matches code or name"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_role(READ_ROLES)),
):
    data = await locations.list_locations(
        db,
        active_only=active_only,
        page=page,
        page_size=page_size,
        location_type=type,
        search=search,
    )
    return success_response("Locations fetched", data)


@router.get("/{location_id}", response_model=APIResponse[InventoryLocationOut])
async def get_location_api(
    location_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_role(READ_ROLES)),
):
    return success_response("Location fetched", await locations.get_location(db, location_id))


@router.patch("/{location_id}", response_model=APIResponse[InventoryLocationOut])
async def update_location_api(
    payload: InventoryLocationUpdate,
    location_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_role(WRITE_ROLES)),
):
    location = await locations.update_location(db, location_id, payload, actor)
    return success_response("Location updated", location)


# Only admins may take a location in or out of service
@router.patch("/{location_id}/deactivate", response_model=APIResponse[InventoryLocationOut])
async def deactivate_location_api(
    location_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_role(["admin"])),
):
    location = await locations.deactivate_location(db, location_id, actor)
    return success_response("Location deactivated", location)


@router.patch("/{location_id}/activate", response_model=APIResponse[InventoryLocationOut])
async def reactivate_location_api(
    location_id: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_role(["admin"])),
):
    location = await locations.reactivate_location(db, location_id, actor)
    return success_response("Location reactivated", location)
