# app/routers/inventory/analytics_router.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.constants.inventory import DEFAULT_TIMEFRAME
from app.schemas.inventory.analytics_schemas import (
    TurnoverReport,
    AgingReport,
    ValuationReport,
    InventoryDashboard,
)
from app.services.inventory.analytics_service import (
    turnover_analytics,
    aging_analytics,
    valuation,
    dashboard,
)
from app.utils.check_roles import require_role, READ_ROLES
from app.utils.response import APIResponse, success_response

router = APIRouter(prefix="/inventory/analytics", tags=["Inventory Analytics"])


@router.get("/turnover", response_model=APIResponse[TurnoverReport])
async def turnover_api(
    timeframe: str = Query(DEFAULT_TIMEFRAME, description="1h | 24h | 7d | 30d | 90d | 1y"),
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await turnover_analytics(db, timeframe)
    return success_response("Turnover analytics fetched successfully", data)


@router.get("/aging", response_model=APIResponse[AgingReport])
async def aging_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await aging_analytics(db)
    return success_response("Aging analytics fetched successfully", data)


@router.get("/valuation", response_model=APIResponse[ValuationReport])
async def valuation_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await valuation(db)
    return success_response("Inventory valuation fetched successfully", data)


@router.get("/dashboard", response_model=APIResponse[InventoryDashboard])
async def dashboard_api(
    db: AsyncSession = Depends(get_db),
    user=Depends(require_role(READ_ROLES)),
):
    data = await dashboard(db)
    return success_response("Inventory dashboard fetched successfully", data)
