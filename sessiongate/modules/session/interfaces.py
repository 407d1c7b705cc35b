"""Session storage interfaces following Black Box Design principles."""
from typing import Any, Callable, Optional, Protocol


class Session(Protocol):
    """Per-identifier key/value bag handed out by a provider."""

    @property
    def session_id(self) -> str:
        """Identifier the session was created under."""
        ...

    async def set(self, key: Any, value: Any) -> None:
        """Store value under key. Last write wins."""
        ...

    async def get(self, key: Any) -> Optional[Any]:
        """
        Look up a key.

        Returns:
            Stored value, or None when the key was never set
        """
        ...

    async def delete(self, key: Any) -> None:
        """Remove key. Removing a missing key is not an error."""
        ...


class Provider(Protocol):
    """Protocol for session storage backends - allows swappable implementations."""

    async def init(self, session_id: str) -> Session:
        """
        Create and persist an empty session.

        Raises:
            StorageError: If the backend cannot allocate the session
        """
        ...

    async def read(self, session_id: str) -> Session:
        """
        Fetch a session, creating it when absent.

        Raises:
            SessionNotFoundError: Only when the provider was built with
                create_on_miss=False
        """
        ...

    async def destroy(self, session_id: str) -> None:
        """Remove a session. Idempotent."""
        ...

    async def gc(self, max_lifetime: int) -> int:
        """
        Evict sessions idle for longer than max_lifetime seconds.

        Returns:
            Number of sessions evicted
        """
        ...


# Receives backend failures swallowed on the request path.
ErrorSink = Callable[[str, Exception], None]
