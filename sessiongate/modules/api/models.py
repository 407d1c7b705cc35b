"""
Sessiongate API data models.

These models define the JSON bodies returned by the HTTP and WebSocket
surface.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class LockAction(str, Enum):
    """Lock state change performed by a request."""

    LOCKED = "locked"
    UNLOCKED = "unlocked"


class LockStatusResponse(BaseModel):
    """Result of a lock check."""

    session_id: str = Field(..., description="Session whose flag was checked")
    proceed: bool = Field(
        ..., description='True when the lock flag is absent or "true"'
    )


class LockActionResponse(BaseModel):
    """Result of a lock or unlock request."""

    status: LockAction


class WebSocketReply(BaseModel):
    """Reply to a WebSocket command."""

    unlocked: bool = False
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Module readiness."""

    status: str
    provider: Optional[str] = None
    gc_running: bool = False
    backend_errors: int = 0
    lock_records: int = 0
