"""In-process session provider."""

import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

from ..session.errors import SessionNotFoundError

logger = logging.getLogger(__name__)


class MemorySession:
    """Session values held in a plain dict."""

    def __init__(self, provider: "MemoryProvider", session_id: str):
        self._provider = provider
        self._session_id = session_id
        self.values: Dict[Any, Any] = {}
        self.last_access = provider.clock()

    @property
    def session_id(self) -> str:
        return self._session_id

    async def set(self, key: Any, value: Any) -> None:
        self.values[key] = value
        self._provider.touch(self._session_id)

    async def get(self, key: Any) -> Optional[Any]:
        self._provider.touch(self._session_id)
        return self.values.get(key)

    async def delete(self, key: Any) -> None:
        self.values.pop(key, None)
        self._provider.touch(self._session_id)


class MemoryProvider:
    """
    Keeps sessions in least-recently-accessed order.

    GC pops from the stale end and stops at the first fresh session, so a
    sweep only visits sessions it evicts plus one.
    """

    def __init__(self, create_on_miss: bool = True, clock: Callable[[], float] = time.time):
        self.create_on_miss = create_on_miss
        self.clock = clock
        self._sessions: "OrderedDict[str, MemorySession]" = OrderedDict()

    async def init(self, session_id: str) -> MemorySession:
        session = MemorySession(self, session_id)
        self._sessions[session_id] = session
        self._sessions.move_to_end(session_id)
        return session

    async def read(self, session_id: str) -> MemorySession:
        session = self._sessions.get(session_id)
        if session is not None:
            self.touch(session_id)
            return session
        if not self.create_on_miss:
            raise SessionNotFoundError(session_id)
        return await self.init(session_id)

    async def destroy(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def gc(self, max_lifetime: int) -> int:
        cutoff = self.clock() - max_lifetime
        evicted = 0
        while self._sessions:
            session_id, session = next(iter(self._sessions.items()))
            if session.last_access >= cutoff:
                break
            del self._sessions[session_id]
            evicted += 1
        return evicted

    def touch(self, session_id: str) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            return
        session.last_access = self.clock()
        self._sessions.move_to_end(session_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
