"""Log entry schema."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class LogEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    level: str
    message: str
    context: dict[str, Any]
    timestamp: datetime
    actor_id: int | None = None
