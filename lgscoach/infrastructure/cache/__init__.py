# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Durable key-value storage for the persistent worker (Redis)."""

from lgscoach.infrastructure.cache.redis_client import RedisClient, RedisError

__all__ = [
    "RedisClient",
    "RedisError",
]
