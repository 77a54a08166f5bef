# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package.

Example:
    >>> from lgscoach.core.config import get_settings
    >>> settings = get_settings()
"""

from lgscoach.core.config.settings import (
    DeliverySettings,
    PushSettings,
    RedisSettings,
    Settings,
    SupabaseSettings,
    WorkerSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "clear_settings_cache",
    "SupabaseSettings",
    "DeliverySettings",
    "WorkerSettings",
    "RedisSettings",
    "PushSettings",
]
