"""Behavior analytics backend.

Weekly learning behavior snapshots, rule-based risk classification,
at-risk listings and intervention tracking.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
