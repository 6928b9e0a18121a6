from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Session(BaseModel):
    session_id: str
    created_at: datetime = Field(default_factory=_now)
    last_seen: datetime = Field(default_factory=_now)
    data: dict[str, Any] = Field(default_factory=dict)
    flash: dict[str, list[str]] = Field(default_factory=dict)   # category -> queued messages
