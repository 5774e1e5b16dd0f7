# app/routers/inventory/inventory_router.py

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.container import get_inventory_service
from app.models.enums.inventory_transaction_status import TransactionType
from app.schemas.inventory.inventory_schemas import (
    InventoryUpdateRequest,
    StockTransferRequest,
    BatchCreateRequest,
    SerialTrackRequest,
    TransactionReverseRequest,
    QuantityUpdateResult,
    StockTransferResult,
    RecordTransactionResult,
    SerialLookupOut,
    ProductInventoryOut,
    LocationInventoryOut,
    MovementHistoryEntry,
    TransactionListData,
)
from app.services.inventory.inventory_service import InventoryService
from app.utils.check_roles import require_role, READ_ROLES, WRITE_ROLES
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/inventory", tags=["Inventory"])


# =========================
# WRITES
# =========================
@router.post("/update", response_model=APIResponse[QuantityUpdateResult])
async def update_quantity_api(
    payload: InventoryUpdateRequest,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
    user=Depends(require_role(WRITE_ROLES)),
):
    data = await service.update_quantity(db, payload, user)
    return success_response("Inventory updated successfully", data)


@router.post("/transfer", response_model=APIResponse[StockTransferResult])
async def transfer_api(
    payload: StockTransferRequest,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
    user=Depends(require_role(WRITE_ROLES)),
):
    data = await service.transfer(db, payload, user)
    return success_response("Stock transferred successfully", data)


@router.post("/batches", response_model=APIResponse[RecordTransactionResult])
async def add_batch_api(
    payload: BatchCreateRequest,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
    user=Depends(require_role(WRITE_ROLES)),
):
    data = await service.add_batch(db, payload, user)
    return success_response("Batch added successfully", data)


@router.post("/serials", response_model=APIResponse[RecordTransactionResult])
async def track_serials_api(
    payload: SerialTrackRequest,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
    user=Depends(require_role(WRITE_ROLES)),
):
    data = await service.track_serials(db, payload, user)
    return success_response("Serial numbers tracked successfully", data)


@router.post(
    "/transactions/{transaction_id}/reverse",
    response_model=APIResponse[QuantityUpdateResult],
)
async def reverse_transaction_api(
    transaction_id: int,
    payload: TransactionReverseRequest,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
    user=Depends(require_role(["admin"])),
):
    data = await service.reverse_transaction(db, transaction_id, user, payload.notes)
    return success_response("Transaction reversed successfully", data)


# =========================
# READS
# =========================
@router.get("/serials/{serial_number}", response_model=APIResponse[SerialLookupOut])
async def find_serial_api(
    serial_number: str,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
    user=Depends(require_role(READ_ROLES)),
):
    data = await service.find_serial(db, serial_number)
    return success_response("Serial number found", data)


@router.get("/products/{product_id}", response_model=APIResponse[ProductInventoryOut])
async def product_inventory_api(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
    user=Depends(require_role(READ_ROLES)),
):
    data = await service.get_product_inventory(db, product_id)
    return success_response("Product inventory fetched successfully", data)


@router.get(
    "/products/{product_id}/movements",
    response_model=APIResponse[list[MovementHistoryEntry]],
)
async def movement_history_api(
    product_id: int,
    location_id: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
    user=Depends(require_role(READ_ROLES)),
):
    data = await service.movement_history(db, product_id, location_id)
    return success_response("Movement history fetched successfully", data)


@router.get("/stock/locations/{location_id}", response_model=APIResponse[LocationInventoryOut])
async def location_inventory_api(
    location_id: int,
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
    user=Depends(require_role(READ_ROLES)),
):
    data = await service.get_location_inventory(db, location_id)
    return success_response("Location inventory fetched successfully", data)


@router.get("/transactions", response_model=APIResponse[TransactionListData])
async def list_transactions_api(
    db: AsyncSession = Depends(get_db),
    service: InventoryService = Depends(get_inventory_service),
    user=Depends(require_role(READ_ROLES)),
    product_id: int | None = Query(None),
    location_id: int | None = Query(None),
    transaction_type: TransactionType | None = Query(None),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    data = await service.list_transactions(
        db,
        product_id=product_id,
        location_id=location_id,
        transaction_type=transaction_type,
        start_date=start_date,
        end_date=end_date,
        page=page,
        page_size=page_size,
    )
    return success_response("Transactions fetched successfully", data)
