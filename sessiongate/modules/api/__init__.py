"""
API Module - Black Box Interface

Purpose: Response models for the HTTP and WebSocket surface
Interface: LockStatusResponse, LockActionResponse, WebSocketReply, HealthResponse
"""

from .models import HealthResponse, LockAction, LockActionResponse, LockStatusResponse, WebSocketReply

__all__ = [
    "HealthResponse",
    "LockAction",
    "LockActionResponse",
    "LockStatusResponse",
    "WebSocketReply",
]
