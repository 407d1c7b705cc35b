"""
Session Module - Black Box Interface

Purpose: Issue and resolve cookie-carried session identifiers
Interface: SessionManager.start(), end(), sweep(), start_gc()
Hidden: Identifier generation, cookie attributes, storage backend

Storage backends plug in through the Provider protocol and a ProviderRegistry.
"""

from .errors import (
    ConfigurationError,
    ProviderRegistrationError,
    SessionError,
    SessionIdentifierError,
    SessionNotFoundError,
    SessionUnavailableError,
    StorageError,
    UnknownProviderError,
)
from .interfaces import ErrorSink, Provider, Session
from .manager import SessionManager, new_session_manager
from .registry import ProviderRegistry

__all__ = [
    "ConfigurationError",
    "ErrorSink",
    "Provider",
    "ProviderRegistrationError",
    "ProviderRegistry",
    "Session",
    "SessionError",
    "SessionIdentifierError",
    "SessionManager",
    "SessionNotFoundError",
    "SessionUnavailableError",
    "StorageError",
    "UnknownProviderError",
    "new_session_manager",
]
