# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package.

Pydantic-based settings loaded from environment variables.

Example:
    >>> from src.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.behavior.timezone
    'UTC'
"""

from src.core.config.settings import (
    APISettings,
    BehaviorSettings,
    CORSSettings,
    DatabaseSettings,
    JWTSettings,
    RedisSettings,
    Settings,
    WorkerSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "DatabaseSettings",
    "RedisSettings",
    "JWTSettings",
    "CORSSettings",
    "APISettings",
    "WorkerSettings",
    "BehaviorSettings",
]
