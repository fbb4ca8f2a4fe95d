# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime and week-window operations
"""

from src.utils.datetime import (
    day_bounds,
    ensure_utc,
    to_local,
    utc_now,
    week_bounds,
    week_end_for,
    week_start_for,
)
from src.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    # Datetime
    "utc_now",
    "ensure_utc",
    "to_local",
    "week_start_for",
    "week_end_for",
    "week_bounds",
    "day_bounds",
]
