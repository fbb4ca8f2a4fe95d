# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer.

Domains:
    auth: Access token verification.
    behavior: Weekly behavior snapshots, risk classification, at-risk
        listings, trends and activity logging.
    intervention: Intervention lifecycle and audit trail.
"""
