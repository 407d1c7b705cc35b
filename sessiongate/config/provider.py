"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass
from typing import Optional, Protocol

from ..modules.session.errors import ConfigurationError


@dataclass
class SessionConfig:
    """Session manager configuration."""
    provider: str
    cookie_name: str
    max_lifetime: int
    create_on_miss: bool


@dataclass
class StorageConfig:
    """Storage backend and lock record configuration."""
    session_dir: str
    lock_store_path: Optional[str]
    redis_url: Optional[str]

    @property
    def redis_enabled(self) -> bool:
        return bool(self.redis_url)


@dataclass
class APIConfig:
    """API configuration."""
    port: int
    host: str
    debug: bool
    log_level: str


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_session_config(self) -> SessionConfig:
        """Get session configuration."""
        ...

    def get_storage_config(self) -> StorageConfig:
        """Get storage configuration."""
        ...

    def get_api_config(self) -> APIConfig:
        """Get API configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_session_config(self) -> SessionConfig:
        """Get session configuration from environment variables."""
        max_lifetime = _int_env("SESSION_MAX_LIFETIME", "3600")
        if max_lifetime <= 0:
            raise ConfigurationError(
                f"SESSION_MAX_LIFETIME must be positive, got {max_lifetime}"
            )

        return SessionConfig(
            provider=os.getenv("SESSION_PROVIDER", "memory"),
            cookie_name=os.getenv("SESSION_COOKIE_NAME", "bdpan"),
            max_lifetime=max_lifetime,
            create_on_miss=os.getenv("SESSION_CREATE_ON_MISS", "true").lower() == "true",
        )

    def get_storage_config(self) -> StorageConfig:
        """Get storage configuration from environment variables."""
        return StorageConfig(
            session_dir=os.getenv("SESSION_DIR", os.path.join(os.getcwd(), "sessions")),
            lock_store_path=os.getenv("LOCK_STORE_PATH") or None,
            redis_url=os.getenv("REDIS_URL") or None,
        )

    def get_api_config(self) -> APIConfig:
        """Get API configuration from environment variables."""
        return APIConfig(
            port=_int_env("API_PORT", "8080"),
            host=os.getenv("API_HOST", "0.0.0.0"),
            debug=os.getenv("API_DEBUG", "false").lower() == "true",
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def _int_env(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
