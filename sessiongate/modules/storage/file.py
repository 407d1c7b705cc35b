"""Session provider storing one JSON document per session."""

import asyncio
import contextlib
import json
import logging
import os
import re
import secrets
import time
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import aiofiles.os

from ..session.errors import SessionNotFoundError, StorageError

logger = logging.getLogger(__name__)

# URL-safe base64 alphabet plus padding; keeps ids from escaping the directory
_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_=-]{1,128}$")


class FileSession:
    """Session values mirrored to disk on every write."""

    def __init__(self, provider: "FileProvider", session_id: str, values: Dict[str, Any]):
        self._provider = provider
        self._session_id = session_id
        self.values = values

    @property
    def session_id(self) -> str:
        return self._session_id

    async def set(self, key: str, value: Any) -> None:
        self.values[key] = value
        await self._provider.write(self._session_id, self.values)

    async def get(self, key: str) -> Optional[Any]:
        await self._provider.touch(self._session_id)
        return self.values.get(key)

    async def delete(self, key: str) -> None:
        if self.values.pop(key, None) is not None:
            await self._provider.write(self._session_id, self.values)


class FileProvider:
    """
    Filesystem-backed provider.

    Last access is the file's modification time, so sessions survive a
    restart for as long as they stay fresh. Keys must be strings and
    values JSON-serializable. Disk access goes through aiofiles or a
    worker thread, so a slow disk never stalls the event loop.
    """

    def __init__(self, directory: str, create_on_miss: bool = True):
        self.directory = Path(directory)
        self.create_on_miss = create_on_miss

    async def init(self, session_id: str) -> FileSession:
        await self.write(session_id, {})
        return FileSession(self, session_id, {})

    async def read(self, session_id: str) -> FileSession:
        path = self._path(session_id)
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                content = await f.read()
            values = json.loads(content)
        except FileNotFoundError:
            if not self.create_on_miss:
                raise SessionNotFoundError(session_id) from None
            return await self.init(session_id)
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read session file {path.name}: {e}") from e
        await self.touch(session_id)
        return FileSession(self, session_id, values)

    async def destroy(self, session_id: str) -> None:
        try:
            await aiofiles.os.remove(self._path(session_id))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Cannot remove session file: {e}") from e

    async def gc(self, max_lifetime: int) -> int:
        cutoff = time.time() - max_lifetime
        evicted = await asyncio.to_thread(self._remove_older_than, cutoff)
        if evicted:
            logger.debug(f"Removed {evicted} stale session file(s) from {self.directory}")
        return evicted

    async def write(self, session_id: str, values: Dict[str, Any]) -> None:
        path = self._path(session_id)
        try:
            content = json.dumps(values)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Cannot write session file {path.name}: {e}") from e

        tmp = self.directory / f".{session_id}.{secrets.token_hex(4)}.tmp"
        try:
            await aiofiles.os.makedirs(self.directory, exist_ok=True)
            async with aiofiles.open(tmp, "w", encoding="utf-8") as f:
                await f.write(content)
            await aiofiles.os.replace(tmp, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                await aiofiles.os.remove(tmp)
            raise StorageError(f"Cannot write session file {path.name}: {e}") from e

    async def touch(self, session_id: str) -> None:
        try:
            await asyncio.to_thread(os.utime, self._path(session_id))
        except FileNotFoundError:
            pass

    def _remove_older_than(self, cutoff: float) -> int:
        evicted = 0
        for path in self.directory.glob("*.json"):
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    evicted += 1
            except FileNotFoundError:
                # Destroyed concurrently
                continue
        return evicted

    def _path(self, session_id: str) -> Path:
        if not _SESSION_ID_PATTERN.match(session_id):
            raise StorageError("Invalid session id")
        return self.directory / f"{session_id}.json"
