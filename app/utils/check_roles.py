from fastapi import Depends, HTTPException, status
from app.utils.get_user import get_current_actor
from app.schemas.auth.actor_schemas import Actor

WRITE_ROLES = ["admin", "supplier", "inventory"]
READ_ROLES = ["admin", "supplier", "inventory", "customer", "system"]


def require_role(roles: list[str]):
    async def role_checker(actor: Actor = Depends(get_current_actor)):
        if actor.role.lower() not in [r.lower() for r in roles]:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied"
            )
        return actor
    return role_checker
