"""
Storage Factory following Black Box Design principles.

This factory:
- Constructs every session provider the configuration allows
- Registers them by name in a fresh ProviderRegistry
- Returns only the registry (hiding provider construction)
"""

import logging
from typing import Any, Optional

from ...config.provider import SessionConfig, StorageConfig
from ..session.registry import ProviderRegistry
from .file import FileProvider
from .memory import MemoryProvider
from .redis_store import RedisProvider

logger = logging.getLogger(__name__)


def build_registry(
    session_config: SessionConfig,
    storage_config: StorageConfig,
    redis_client: Optional[Any] = None,
) -> ProviderRegistry:
    """
    Build the provider registry.

    Args:
        session_config: Session configuration (lifetime, miss policy)
        storage_config: Storage configuration (session directory)
        redis_client: Optional async Redis client; "redis" is only
            registered when one is supplied

    Returns:
        ProviderRegistry with "memory", "file" and possibly "redis"
    """
    registry = ProviderRegistry()
    create_on_miss = session_config.create_on_miss

    registry.register("memory", MemoryProvider(create_on_miss=create_on_miss))
    registry.register(
        "file",
        FileProvider(storage_config.session_dir, create_on_miss=create_on_miss),
    )

    if redis_client is not None:
        registry.register(
            "redis",
            RedisProvider(
                redis_client,
                ttl=session_config.max_lifetime,
                create_on_miss=create_on_miss,
            ),
        )
    else:
        logger.info("No Redis client configured; redis session provider disabled")

    logger.info(f"Session providers registered: {', '.join(registry.names())}")
    return registry
