"""Session module exceptions."""


class SessionError(Exception):
    """Base class for all session module errors."""


class ConfigurationError(SessionError, ValueError):
    """Startup misconfiguration. Never recovered from."""


class ProviderRegistrationError(ConfigurationError):
    """A provider was registered twice or as None."""


class UnknownProviderError(ConfigurationError):
    """No provider is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(f"session: unknown provider {name!r}")
        self.name = name


class StorageError(SessionError):
    """A storage backend could not allocate, read or remove a session."""


class SessionNotFoundError(StorageError):
    """Read miss on a provider configured not to create on miss."""

    def __init__(self, session_id: str):
        super().__init__(f"session {session_id!r} not found")
        self.session_id = session_id


class SessionIdentifierError(SessionError, RuntimeError):
    """Not enough randomness to generate a session identifier."""


class SessionUnavailableError(SessionError):
    """The backend failed and no session could be resolved for the request."""
