from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.core.container import get_broadcaster
from app.schemas.auth.actor_schemas import Actor
from app.services.common.notification_service import InMemoryBroadcaster, event_stream
from app.utils.check_roles import require_role, READ_ROLES
import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/inventory/events",
    tags=["Inventory Events"],
)


@router.get("/", response_class=StreamingResponse)
async def stream_inventory_events_api(
    request: Request,
    broadcaster: InMemoryBroadcaster = Depends(get_broadcaster),
    actor: Actor = Depends(require_role(READ_ROLES)),
):
    """Live inventory_changed, stock_transferred, batch_added, serials_tracked and reorder_alert events."""
    logger.info("Inventory event subscriber connected", extra={"actor_id": actor.id})
    return StreamingResponse(
        event_stream(broadcaster, is_disconnected=request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
