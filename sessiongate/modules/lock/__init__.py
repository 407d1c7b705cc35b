"""
Lock Module - Black Box Interface

Purpose: Serialize write access to the service across client connections
Interface: LockCoordinator.check_lock(), lock_status(), lock(), unlock(), websocket_unlock()
Hidden: Flag encoding, durable record layout, commit strategy

Durable records can live in memory or in a JSON file; anything offering a
mutable mapping plus save() works.
"""

from .coordinator import (
    FALLBACK_SESSION_ID,
    LOCK_KEY,
    LOCK_VALUE,
    RECORD_MAX_AGE,
    UNLOCK_VALUE,
    LockCoordinator,
)
from .records import JsonFileLockRecordStore, LockRecord, LockRecordStore, MemoryLockRecordStore

__all__ = [
    "FALLBACK_SESSION_ID",
    "JsonFileLockRecordStore",
    "LOCK_KEY",
    "LOCK_VALUE",
    "LockCoordinator",
    "LockRecord",
    "LockRecordStore",
    "MemoryLockRecordStore",
    "RECORD_MAX_AGE",
    "UNLOCK_VALUE",
]
