from __future__ import annotations

from .settings import AppConfig, RuntimeConfig, Settings, load_config
from .webdav import (
    VALID_MECHANISMS,
    SyncDataConfig,
    SyncStrategyConfig,
    WebDAVConfig,
    validate_webdav_config,
)

__all__ = [
    "VALID_MECHANISMS",
    "AppConfig",
    "RuntimeConfig",
    "Settings",
    "SyncDataConfig",
    "SyncStrategyConfig",
    "WebDAVConfig",
    "load_config",
    "validate_webdav_config",
]
