# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware components.

Exports:
    AuthMiddleware: JWT authentication middleware.
    CurrentUser: Authenticated caller attached to request.state.user.
"""

from src.api.middleware.auth import AuthMiddleware, CurrentUser

__all__ = [
    "AuthMiddleware",
    "CurrentUser",
]
