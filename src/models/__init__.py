# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API request/response models.

- behavior: Snapshots, at-risk listing, trends, activity logging
- intervention: Intervention lifecycle
"""
