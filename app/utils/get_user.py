from fastapi import Header, HTTPException, Request, status

from app.schemas.auth.actor_schemas import Actor
from app.utils.logger import get_logger

logger = get_logger("auth.guard")


async def get_current_actor(
    request: Request,
    x_actor_id: int | None = Header(None),
    x_actor_role: str | None = Header(None),
    x_actor_name: str | None = Header(None),
) -> Actor:
    """Identity asserted by the upstream gateway; authentication happens there."""
    if x_actor_id is None or not x_actor_role:
        logger.warning("Missing actor headers", extra={"path": request.url.path})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing actor identity",
        )

    if x_actor_id < 1:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid actor identity",
        )

    actor = Actor(id=x_actor_id, role=x_actor_role.strip().lower(), username=x_actor_name)
    request.state.actor = actor
    return actor
