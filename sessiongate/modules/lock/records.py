"""
Durable lock records.

A record survives process restarts and mirrors the lock flag held in the
session, keyed by session id. Stores are plain mutable mappings with an
explicit save() that commits the whole table.
"""

import json
import logging
import os
import tempfile
import threading
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import Dict, Iterator, Optional, Protocol

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class LockRecord(BaseModel):
    """Last access time and lock flag of one session."""

    last_accessed_time: datetime = Field(default_factory=lambda: datetime.now(UTC))
    lock: str = Field("false", description='Lock flag, "true" or "false"')

    @field_validator("last_accessed_time")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


class LockRecordStore(Protocol):
    """Keyed map of session id to LockRecord with a durable commit."""

    def __getitem__(self, session_id: str) -> LockRecord: ...

    def __setitem__(self, session_id: str, record: LockRecord) -> None: ...

    def __delitem__(self, session_id: str) -> None: ...

    def __contains__(self, session_id: object) -> bool: ...

    def __iter__(self) -> Iterator[str]: ...

    def __len__(self) -> int: ...

    def get(self, session_id: str, default=None): ...

    def items(self): ...

    def save(self) -> None:
        """Persist the whole table."""
        ...


class MemoryLockRecordStore(MutableMapping):
    """Record table that lives only as long as the process."""

    def __init__(self, records: Optional[Dict[str, LockRecord]] = None):
        self._records: Dict[str, LockRecord] = dict(records or {})
        self.save_count = 0

    def __getitem__(self, session_id: str) -> LockRecord:
        return self._records[session_id]

    def __setitem__(self, session_id: str, record: LockRecord) -> None:
        self._records[session_id] = record

    def __delitem__(self, session_id: str) -> None:
        del self._records[session_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def save(self) -> None:
        self.save_count += 1


class JsonFileLockRecordStore(MemoryLockRecordStore):
    """
    Record table persisted as a JSON object in a single file.

    The file is loaded once at construction. save() writes a temporary file
    and renames it over the old one, so readers never see a partial table.
    """

    def __init__(self, path: str):
        super().__init__()
        self.path = path
        self._save_lock = threading.Lock()
        self._records = self._load()

    def _load(self) -> Dict[str, LockRecord]:
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            return {}

        records = {}
        for session_id, data in raw.items():
            try:
                records[session_id] = LockRecord.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Skipping malformed lock record {session_id[:8]}...: {e}")
        logger.info(f"Loaded {len(records)} lock record(s) from {self.path}")
        return records

    def save(self) -> None:
        with self._save_lock:
            payload = {
                session_id: record.model_dump(mode="json")
                for session_id, record in list(self._records.items())
            }
            directory = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(directory, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, indent=2)
                os.replace(tmp, self.path)
            except Exception:
                os.unlink(tmp)
                raise
            self.save_count += 1
