# app/routers/masters/product_router.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.product_status import ProductStatus
from app.schemas.masters.product_schemas import (
    ProductCreate,
    InventorySettingsUpdate,
    ProductOut,
    ProductListData,
)
from app.services.masters.product_service import (
    create_product,
    list_products,
    get_product,
    update_inventory_settings,
)
from app.utils.check_roles import require_role, READ_ROLES, WRITE_ROLES
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(prefix="/products", tags=["Products"])
logger = get_logger(__name__)


@router.post("/", response_model=APIResponse[ProductOut])
async def create_product_api(
    payload: ProductCreate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    logger.info("Create product", extra={"sku": payload.sku})
    product = await create_product(db, payload, user)
    return success_response("Product created successfully", product)


@router.get("/", response_model=APIResponse[ProductListData])
async def list_products_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
    search: str | None = Query(None, description="Search by name or SKU"),
    status: ProductStatus | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    data = await list_products(
        db=db,
        search=search,
        status=status,
        page=page,
        page_size=page_size,
    )
    return success_response("Products fetched successfully", data)


@router.get("/{product_id}", response_model=APIResponse[ProductOut])
async def get_product_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    product = await get_product(db, product_id)
    return success_response("Product fetched successfully", product)


@router.patch("/{product_id}/inventory-settings", response_model=APIResponse[ProductOut])
async def update_inventory_settings_api(
    product_id: int,
    payload: InventorySettingsUpdate,
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(WRITE_ROLES)),
):
    product = await update_inventory_settings(db, product_id, payload, user)
    return success_response("Inventory settings updated successfully", product)
