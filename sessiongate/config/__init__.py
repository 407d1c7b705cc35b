"""
Config Module - Black Box Interface

Purpose: Application configuration management
Interface: ConfigProvider, EnvConfigProvider
Hidden: Config sources, validation logic, environment parsing
"""

from .provider import APIConfig, ConfigProvider, EnvConfigProvider, SessionConfig, StorageConfig

__all__ = ["APIConfig", "ConfigProvider", "EnvConfigProvider", "SessionConfig", "StorageConfig"]
