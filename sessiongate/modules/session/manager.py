import asyncio
import base64
import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Optional
from urllib.parse import quote_plus, unquote_plus

from starlette.requests import HTTPConnection
from starlette.responses import Response

from .errors import ConfigurationError, SessionIdentifierError
from .interfaces import ErrorSink, Provider, Session
from .registry import ProviderRegistry

logger = logging.getLogger(__name__)

# 256 bits of entropy per identifier
SESSION_ID_BYTES = 32


class SessionManager:
    def __init__(
        self,
        provider: Provider,
        cookie_name: str,
        max_lifetime: int,
        error_sink: Optional[ErrorSink] = None,
    ):
        """
        Initialize session manager.

        Args:
            provider: Storage backend that owns all session data
            cookie_name: Name of the cookie carrying the session id
            max_lifetime: Session lifetime and GC interval in seconds
            error_sink: Optional callback for backend failures that are
                swallowed on the request path
        """
        if not cookie_name:
            raise ConfigurationError("session: cookie name must not be empty")
        if max_lifetime <= 0:
            raise ConfigurationError(
                f"session: max lifetime must be positive, got {max_lifetime}"
            )
        self.provider = provider
        self.cookie_name = cookie_name
        self.max_lifetime = max_lifetime
        self.error_sink = error_sink
        # Guards session creation, destruction, GC and lock-state mutation
        self.lock = asyncio.Lock()
        self._gc_task: Optional[asyncio.Task] = None
        self._gc_stop: Optional[asyncio.Event] = None

    def generate_identifier(self) -> str:
        """
        Generate a random URL-safe session identifier.

        Raises:
            SessionIdentifierError: If the system cannot supply randomness
        """
        try:
            raw = secrets.token_bytes(SESSION_ID_BYTES)
        except OSError as e:
            raise SessionIdentifierError(
                f"session: failed to read random bytes: {e}"
            ) from e
        if len(raw) != SESSION_ID_BYTES:
            raise SessionIdentifierError("session: short read from random source")
        return base64.urlsafe_b64encode(raw).decode("ascii")

    def session_id_from(self, connection: HTTPConnection) -> Optional[str]:
        """Return the unescaped session id carried by the request, if any."""
        value = connection.cookies.get(self.cookie_name)
        if not value:
            return None
        return unquote_plus(value)

    async def start(self, request: HTTPConnection, response: Response) -> Optional[Session]:
        """
        Resolve the request's session, creating one when the cookie is missing.

        Backend failures are logged and yield None instead of raising, so
        callers must handle a missing session.

        Raises:
            SessionIdentifierError: If a new identifier could not be generated
        """
        async with self.lock:
            return await self.resolve(request, response)

    async def resolve(self, request: HTTPConnection, response: Response) -> Optional[Session]:
        """Same as start(); the caller must already hold self.lock."""
        session_id = self.session_id_from(request)
        if session_id is None:
            session_id = self.generate_identifier()
            session = None
            try:
                session = await self.provider.init(session_id)
            except Exception as e:
                self._report("init", session_id, e)
            response.set_cookie(
                self.cookie_name,
                quote_plus(session_id),
                max_age=self.max_lifetime,
                expires=datetime.now(UTC) + timedelta(seconds=self.max_lifetime),
                path="/",
                httponly=True,
            )
            logger.info(f"Created session {_short(session_id)}")
            return session

        try:
            return await self.provider.read(session_id)
        except Exception as e:
            self._report("read", session_id, e)
            return None

    async def end(self, request: HTTPConnection, response: Response) -> None:
        """Destroy the request's session and tell the client to drop the cookie."""
        session_id = self.session_id_from(request)
        if session_id is None:
            return

        async with self.lock:
            try:
                await self.provider.destroy(session_id)
            except Exception as e:
                self._report("destroy", session_id, e)
            response.set_cookie(
                self.cookie_name,
                "",
                max_age=-1,
                expires=datetime.now(UTC),
                path="/",
                httponly=True,
            )
        logger.info(f"Ended session {_short(session_id)}")

    async def sweep(self) -> int:
        """Run a single GC pass over the provider."""
        async with self.lock:
            evicted = await self.provider.gc(self.max_lifetime)
        if evicted:
            logger.info(f"Session GC evicted {evicted} session(s)")
        return evicted

    def start_gc(self) -> asyncio.Task:
        """
        Start the recurring GC task.

        The task sweeps, then waits exactly one max lifetime, until
        stop_gc() is called. Calling this twice returns the running task.
        """
        if self._gc_task is not None and not self._gc_task.done():
            return self._gc_task
        self._gc_stop = asyncio.Event()
        self._gc_task = asyncio.create_task(self._gc_loop(), name="session-gc")
        return self._gc_task

    async def stop_gc(self) -> None:
        if self._gc_task is None:
            return
        self._gc_stop.set()
        await self._gc_task
        self._gc_task = None

    @property
    def gc_running(self) -> bool:
        return self._gc_task is not None and not self._gc_task.done()

    async def _gc_loop(self) -> None:
        while not self._gc_stop.is_set():
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Session GC failed: {e}")
                if self.error_sink:
                    self.error_sink("gc", e)
            try:
                await asyncio.wait_for(self._gc_stop.wait(), timeout=self.max_lifetime)
            except asyncio.TimeoutError:
                pass

    def _report(self, operation: str, session_id: str, exc: Exception) -> None:
        logger.error(f"Session {operation} failed for {_short(session_id)}: {exc}")
        if self.error_sink:
            self.error_sink(operation, exc)


def new_session_manager(
    registry: ProviderRegistry,
    provider_name: str,
    cookie_name: str,
    max_lifetime: int,
    error_sink: Optional[ErrorSink] = None,
) -> SessionManager:
    """
    Build a manager over a registered provider.

    Raises:
        UnknownProviderError: If provider_name is not registered
        ConfigurationError: If cookie_name or max_lifetime is invalid
    """
    provider = registry.get(provider_name)
    return SessionManager(provider, cookie_name, max_lifetime, error_sink=error_sink)


def _short(session_id: str) -> str:
    # Never log full identifiers
    return session_id[:8] + "..."
