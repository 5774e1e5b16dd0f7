# app/services/masters/product_service.py

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, or_
from sqlalchemy.exc import IntegrityError

from app.models.masters.product_models import Product
from app.models.enums.product_status import ProductStatus
from app.schemas.auth.actor_schemas import Actor
from app.schemas.masters.product_schemas import (
    ProductCreate,
    InventorySettingsUpdate,
    ProductOut,
    ProductListData,
)
from app.core.exceptions import AppException, ValidationError
from app.constants.error_codes import ErrorCode
from app.services.inventory.inventory_movement_service import get_product_or_404
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _map_product(product: Product) -> ProductOut:
    return ProductOut.model_validate(product)


# ---------------- CREATE ----------------
async def create_product(db: AsyncSession, payload: ProductCreate, user: Actor):
    exists = await db.scalar(select(Product.id).where(Product.sku == payload.sku))
    if exists:
        raise AppException(
            409,
            "SKU already exists",
            ErrorCode.PRODUCT_SKU_EXISTS,
        )

    product = Product(
        **payload.model_dump(),
        stock=0,
        version=1,
        created_by_id=user.id,
        updated_by_id=user.id,
    )

    try:
        db.add(product)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise AppException(
            409,
            "SKU already exists",
            ErrorCode.PRODUCT_SKU_EXISTS,
        )

    logger.info("Product created", extra={"product_id": product.id, "sku": product.sku})
    return _map_product(await get_product_or_404(db, product.id))


# ---------------- READ ----------------
async def get_product(db: AsyncSession, product_id: int):
    return _map_product(await get_product_or_404(db, product_id))


async def list_products(
    db: AsyncSession,
    search: str | None,
    status: ProductStatus | None,
    page: int,
    page_size: int,
):
    query = select(Product)

    if search:
        like = f"%{search}%"
        query = query.where(or_(Product.name.ilike(like), Product.sku.ilike(like)))
    if status:
        query = query.where(Product.status == status)

    total = await db.scalar(select(func.count()).select_from(query.subquery()))

    result = await db.execute(
        query.order_by(Product.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )

    return ProductListData(
        total=total or 0,
        items=[_map_product(p) for p in result.scalars().all()],
    )


# ---------------- INVENTORY SETTINGS (OPTIMISTIC LOCK) ----------------
async def update_inventory_settings(
    db: AsyncSession,
    product_id: int,
    payload: InventorySettingsUpdate,
    user: Actor,
):
    current = await get_product_or_404(db, product_id)

    updates = payload.model_dump(exclude_unset=True, exclude={"version"})
    if not updates or all(getattr(current, k) == v for k, v in updates.items()):
        raise ValidationError("No changes detected", ErrorCode.NO_CHANGES_DETECTED)

    result = await db.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.version == payload.version,
        )
        .values(
            **updates,
            version=Product.version + 1,
            updated_by_id=user.id,
        )
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        await db.rollback()
        raise AppException(
            409,
            "Product modified by another process",
            ErrorCode.PRODUCT_VERSION_CONFLICT,
        )

    await db.commit()
    logger.info("Product inventory settings updated", extra={"product_id": product_id, "fields": list(updates)})
    return _map_product(await get_product_or_404(db, product_id))
