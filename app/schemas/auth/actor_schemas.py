from pydantic import BaseModel, Field
from typing import Optional


class Actor(BaseModel):
    """Pre-authorized caller identity handed in by the gateway."""

    id: int = Field(..., ge=1)
    role: str
    username: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.username or f"user-{self.id}"


SYSTEM_ACTOR = Actor(id=1, role="system", username="system")
