from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, or_
from sqlalchemy.exc import IntegrityError

from app.models.enums.location_type import LocationType
from app.models.inventory.inventory_location_models import InventoryLocation
from app.schemas.auth.actor_schemas import Actor
from app.schemas.inventory.location_schemas import (
    InventoryLocationCreate,
    InventoryLocationUpdate,
    InventoryLocationOut,
    InventoryLocationListData,
    LocationAddress,
    LocationContact,
    LocationOperatingHours,
    LocationCoordinates,
)
from app.core.exceptions import AppException, NotFoundError, ValidationError
from app.constants.error_codes import ErrorCode
from app.services.inventory.inventory_movement_service import get_location_or_404
import logging

logger = logging.getLogger(__name__)


def _map_location(loc: InventoryLocation) -> InventoryLocationOut:
    return InventoryLocationOut(
        id=loc.id,
        code=loc.code,
        name=loc.name,
        type=loc.type,
        capacity=loc.capacity,
        current_usage=loc.current_usage,
        usage_percentage=loc.usage_percentage,
        available_capacity=loc.available_capacity,
        address=LocationAddress(
            street=loc.street,
            city=loc.city,
            state=loc.state,
            postal_code=loc.postal_code,
            country=loc.country,
        ),
        contact=LocationContact(
            name=loc.contact_name,
            email=loc.contact_email,
            phone=loc.contact_phone,
        ),
        operating_hours=LocationOperatingHours(
            open=loc.opening_time,
            close=loc.closing_time,
            timezone=loc.timezone,
        ),
        coordinates=LocationCoordinates(
            latitude=loc.latitude,
            longitude=loc.longitude,
        ),
        manager_id=loc.manager_id,
        notes=loc.notes,
        is_active=loc.is_active,
        version=loc.version,
        created_at=loc.created_at,
        updated_at=loc.updated_at,
        created_by=loc.created_by_id,
        updated_by=loc.updated_by_id,
    )


async def create_location(db: AsyncSession, payload: InventoryLocationCreate, user: Actor):
    logger.info("Create inventory location", extra={"code": payload.code})

    code = payload.code.strip().lower()

    exists = await db.scalar(select(InventoryLocation.id).where(InventoryLocation.code == code))
    if exists:
        raise AppException(
            409,
            "Location code already exists",
            ErrorCode.LOCATION_CODE_EXISTS,
        )

    location = InventoryLocation(
        code=code,
        name=payload.name,
        type=payload.type,
        capacity=payload.capacity,
        current_usage=0,
        street=payload.address.street,
        city=payload.address.city,
        state=payload.address.state,
        postal_code=payload.address.postal_code,
        country=payload.address.country,
        contact_name=payload.contact.name,
        contact_email=payload.contact.email,
        contact_phone=payload.contact.phone,
        opening_time=payload.operating_hours.open,
        closing_time=payload.operating_hours.close,
        timezone=payload.operating_hours.timezone,
        latitude=payload.coordinates.latitude,
        longitude=payload.coordinates.longitude,
        manager_id=payload.manager_id,
        notes=payload.notes,
        is_active=True,
        version=1,
        created_by_id=user.id,
        updated_by_id=user.id,
    )

    try:
        db.add(location)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        # race-condition safety net
        raise AppException(
            409,
            "Location code already exists",
            ErrorCode.LOCATION_CODE_EXISTS,
        )

    return _map_location(await get_location_or_404(db, location.id))


async def get_location(db: AsyncSession, location_id: int):
    return _map_location(await get_location_or_404(db, location_id))


async def list_locations(
    db: AsyncSession,
    active_only: bool,
    page: int,
    page_size: int,
    location_type: LocationType | None = None,
    search: str | None = None,
):
    query = select(InventoryLocation)

    if active_only:
        query = query.where(InventoryLocation.is_active.is_(True))
    if location_type:
        query = query.where(InventoryLocation.type == location_type)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(InventoryLocation.code.ilike(pattern), InventoryLocation.name.ilike(pattern))
        )

    total = await db.scalar(select(func.count()).select_from(query.subquery()))

    result = await db.execute(
        query.order_by(InventoryLocation.created_at.desc(), InventoryLocation.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )

    return InventoryLocationListData(
        total=total or 0,
        items=[_map_location(l) for l in result.scalars().all()],
    )


async def update_location(
    db: AsyncSession,
    location_id: int,
    payload: InventoryLocationUpdate,
    user: Actor,
):
    current = await get_location_or_404(db, location_id)

    updates = payload.model_dump(exclude_unset=True, exclude={"version"})
    if not updates:
        raise ValidationError("No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    changes = [k for k, v in updates.items() if getattr(current, k) != v]
    if not changes:
        raise ValidationError("No actual changes detected", ErrorCode.NO_CHANGES_DETECTED)

    stmt = (
        update(InventoryLocation)
        .where(
            InventoryLocation.id == location_id,
            InventoryLocation.version == payload.version,
        )
        .values(
            **updates,
            version=InventoryLocation.version + 1,
            updated_by_id=user.id,
        )
        .execution_options(synchronize_session=False)
    )

    result = await db.execute(stmt)
    if result.rowcount != 1:
        await db.rollback()
        raise AppException(
            409,
            "Location modified by another process",
            ErrorCode.LOCATION_VERSION_CONFLICT,
        )

    await db.commit()
    logger.info("Inventory location updated", extra={"location_id": location_id, "fields": changes})
    return _map_location(await get_location_or_404(db, location_id))


async def _set_active(db: AsyncSession, location_id: int, active: bool, user: Actor):
    result = await db.execute(
        update(InventoryLocation)
        .where(
            InventoryLocation.id == location_id,
            InventoryLocation.is_active.is_(not active),
        )
        .values(
            is_active=active,
            version=InventoryLocation.version + 1,
            updated_by_id=user.id,
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        await db.rollback()
        exists = await db.scalar(select(InventoryLocation.id).where(InventoryLocation.id == location_id))
        if not exists:
            raise NotFoundError("Location not found", ErrorCode.LOCATION_NOT_FOUND)
        raise AppException(
            409,
            f"Location already {'active' if active else 'inactive'}",
            ErrorCode.LOCATION_STATE_INVALID,
        )

    await db.commit()
    return _map_location(await get_location_or_404(db, location_id))


async def deactivate_location(db: AsyncSession, location_id: int, user: Actor):
    logger.info("Deactivate inventory location", extra={"location_id": location_id})
    return await _set_active(db, location_id, False, user)


async def reactivate_location(db: AsyncSession, location_id: int, user: Actor):
    logger.info("Reactivate inventory location", extra={"location_id": location_id})
    return await _set_active(db, location_id, True, user)
