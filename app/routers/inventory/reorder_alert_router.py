# app/routers/inventory/reorder_alert_router.py

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db, AsyncSessionLocal
from app.core.container import get_reorder_alert_service
from app.models.enums.reorder_alert_status import AlertStatus, AlertPriority
from app.schemas.inventory.reorder_alert_schemas import (
    AlertActionRequest,
    ReorderAlertOut,
    ReorderAlertListData,
    ScanResult,
)
from app.services.inventory.reorder_alert_service import ReorderAlertService
from app.utils.check_roles import require_role, READ_ROLES, WRITE_ROLES
from app.utils.response import APIResponse, success_response
from app.utils.logger import get_logger

router = APIRouter(prefix="/inventory/alerts", tags=["Reorder Alerts"])
logger = get_logger(__name__)


async def _background_scan(service: ReorderAlertService) -> None:
    async with AsyncSessionLocal() as db:
        try:
            await service.scan_and_trigger(db)
        except Exception:
            logger.exception("Background reorder scan failed")


# =========================
# SCANS
# =========================
@router.post("/scan", response_model=APIResponse[ScanResult])
async def scan_api(
    background_tasks: BackgroundTasks,
    wait: bool = Query(False, description="Run the sweep inside the request"),
    db: AsyncSession = Depends(get_db),
    service: ReorderAlertService = Depends(get_reorder_alert_service),
    user=Depends(require_role(WRITE_ROLES)),
):
    if not wait:
        background_tasks.add_task(_background_scan, service)
        return success_response("Reorder scan scheduled")

    data = await service.scan_and_trigger(db)
    return success_response("Reorder scan completed", data)


@router.post("/scan/locations", response_model=APIResponse[ScanResult])
async def scan_all_locations_api(
    db: AsyncSession = Depends(get_db),
    service: ReorderAlertService = Depends(get_reorder_alert_service),
    user=Depends(require_role(WRITE_ROLES)),
):
    data = await service.scan_all_locations(db)
    return success_response("Location scans completed", data)


@router.post("/scan/locations/{location_id}", response_model=APIResponse[ScanResult])
async def scan_location_api(
    location_id: int,
    db: AsyncSession = Depends(get_db),
    service: ReorderAlertService = Depends(get_reorder_alert_service),
    user=Depends(require_role(WRITE_ROLES)),
):
    data = await service.scan_location(db, location_id)
    return success_response("Location scan completed", data)


# =========================
# READS
# =========================
@router.get("/", response_model=APIResponse[ReorderAlertListData])
async def list_alerts_api(
    db: AsyncSession = Depends(get_db),
    service: ReorderAlertService = Depends(get_reorder_alert_service),
    user=Depends(require_role(READ_ROLES)),
    status: AlertStatus | None = Query(None),
    priority: AlertPriority | None = Query(None),
    product_id: int | None = Query(None),
    location_id: int | None = Query(None),
    open_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    data = await service.list_alerts(
        db,
        status=status,
        priority=priority,
        product_id=product_id,
        location_id=location_id,
        open_only=open_only,
        page=page,
        page_size=page_size,
    )
    return success_response("Reorder alerts fetched successfully", data)


@router.get("/{alert_id}", response_model=APIResponse[ReorderAlertOut])
async def get_alert_api(
    alert_id: int,
    db: AsyncSession = Depends(get_db),
    service: ReorderAlertService = Depends(get_reorder_alert_service),
    user=Depends(require_role(READ_ROLES)),
):
    data = await service.get_alert(db, alert_id)
    return success_response("Reorder alert fetched successfully", data)


# =========================
# LIFECYCLE
# =========================
@router.post("/{alert_id}/acknowledge", response_model=APIResponse[ReorderAlertOut])
async def acknowledge_alert_api(
    alert_id: int,
    payload: AlertActionRequest,
    db: AsyncSession = Depends(get_db),
    service: ReorderAlertService = Depends(get_reorder_alert_service),
    user=Depends(require_role(WRITE_ROLES)),
):
    data = await service.acknowledge(db, alert_id, user, payload.notes)
    return success_response("Reorder alert acknowledged", data)


@router.post("/{alert_id}/resolve", response_model=APIResponse[ReorderAlertOut])
async def resolve_alert_api(
    alert_id: int,
    payload: AlertActionRequest,
    db: AsyncSession = Depends(get_db),
    service: ReorderAlertService = Depends(get_reorder_alert_service),
    user=Depends(require_role(WRITE_ROLES)),
):
    data = await service.resolve(db, alert_id, user, payload.notes)
    return success_response("Reorder alert resolved", data)


@router.post("/{alert_id}/cancel", response_model=APIResponse[ReorderAlertOut])
async def cancel_alert_api(
    alert_id: int,
    payload: AlertActionRequest,
    db: AsyncSession = Depends(get_db),
    service: ReorderAlertService = Depends(get_reorder_alert_service),
    user=Depends(require_role(WRITE_ROLES)),
):
    data = await service.cancel(db, alert_id, user, payload.notes)
    return success_response("Reorder alert cancelled", data)
