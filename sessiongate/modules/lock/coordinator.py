import logging
from datetime import UTC, datetime, timedelta
from typing import Callable, Tuple

from starlette.requests import HTTPConnection
from starlette.responses import Response

from ..session.errors import SessionUnavailableError
from ..session.interfaces import Session
from ..session.manager import SessionManager
from .records import LockRecord, LockRecordStore

logger = logging.getLogger(__name__)

# Session key holding the lock flag: absent, LOCK_VALUE or UNLOCK_VALUE
LOCK_KEY = "lock"
LOCK_VALUE = "true"
UNLOCK_VALUE = "false"

# Session id used by WebSocket clients that present no cookie
FALLBACK_SESSION_ID = "baidupcsgo"

RECORD_MAX_AGE = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LockCoordinator:
    """
    Lock flag kept in the session and mirrored to durable lock records.

    The flag is a string tri-state. check_lock() passes through for an
    absent flag and for LOCK_VALUE, and blocks only on UNLOCK_VALUE.
    """

    def __init__(
        self,
        manager: SessionManager,
        records: LockRecordStore,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.manager = manager
        self.records = records
        self.clock = clock

    async def initialize(self) -> None:
        """
        Reconcile sessions with durable records after a restart.

        Records idle for 24 hours or more are dropped. The flag of every
        remaining record is copied into its (possibly new) session.
        """
        now = self.clock()
        pruned = 0
        restored = 0

        async with self.manager.lock:
            for session_id, record in list(self.records.items()):
                if now - record.last_accessed_time >= RECORD_MAX_AGE:
                    del self.records[session_id]
                    pruned += 1
                    continue
                try:
                    session = await self.manager.provider.read(session_id)
                    await session.set(LOCK_KEY, record.lock)
                    restored += 1
                except Exception as e:
                    logger.error(f"Failed to restore lock state for {session_id[:8]}...: {e}")

        if pruned:
            self.records.save()
        logger.info(f"Lock records initialized: {restored} restored, {pruned} pruned")

    async def check_lock(self, request: HTTPConnection, response: Response) -> bool:
        """
        Read the session's lock flag.

        Returns:
            True if the flag is absent or "true", False if it is "false".
            A False result also refreshes the durable record's access time.
        """
        _, proceed = await self.lock_status(request, response)
        return proceed

    async def lock_status(self, request: HTTPConnection, response: Response) -> Tuple[str, bool]:
        """Like check_lock(), but also return the id of the session that was checked."""
        session = _require(await self.manager.start(request, response))
        value = await session.get(LOCK_KEY)
        if value is None or value == LOCK_VALUE:
            return session.session_id, True

        record = self.records.get(session.session_id)
        if record is not None:
            record.last_accessed_time = self.clock()
        return session.session_id, False

    async def lock(self, request: HTTPConnection, response: Response) -> None:
        """Write LOCK_VALUE to the session and to its durable record, if one exists."""
        async with self.manager.lock:
            session = _require(await self.manager.resolve(request, response))
            await session.set(LOCK_KEY, LOCK_VALUE)

            record = self.records.get(session.session_id)
            if record is not None:
                record.lock = LOCK_VALUE
        logger.info("Session locked")

    async def unlock(self, request: HTTPConnection, response: Response) -> None:
        """Write UNLOCK_VALUE to the session, overwrite its durable record and commit."""
        async with self.manager.lock:
            session = _require(await self.manager.resolve(request, response))
            await self._unlock(session)
        logger.info("Session unlocked")

    async def websocket_unlock(self, connection: HTTPConnection) -> None:
        """
        Unlock from a transport that cannot set response cookies.

        The session id comes from the request cookie only; clients without
        one share FALLBACK_SESSION_ID.
        """
        async with self.manager.lock:
            session_id = self.manager.session_id_from(connection) or FALLBACK_SESSION_ID
            try:
                session = await self.manager.provider.read(session_id)
            except Exception as e:
                logger.error(f"WebSocket unlock could not read session: {e}")
                raise SessionUnavailableError(str(e)) from e
            await self._unlock(session)
        logger.info("Session unlocked over WebSocket")

    async def _unlock(self, session: Session) -> None:
        await session.set(LOCK_KEY, UNLOCK_VALUE)
        self.records[session.session_id] = LockRecord(
            last_accessed_time=self.clock(),
            lock=UNLOCK_VALUE,
        )
        self.records.save()


def _require(session):
    if session is None:
        raise SessionUnavailableError("session backend unavailable")
    return session
