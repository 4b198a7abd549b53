from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class WsEnvelope(BaseModel):
    """Envelope for WebSocket messages."""
    type: str = Field(..., description="Event type (e.g., 'registration.created', 'guest.updated').")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Event payload.")
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Timestamp (UTC).")
    actor: Optional[str] = Field(default=None, description="Email of the admin who caused the event.")
