# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Clients for the hosted backend (Supabase).

- PostgrestClient: REST access to tables (httpx)
- RealtimeClient: filtered INSERT change feeds over websocket (aiohttp)
"""

from lgscoach.infrastructure.supabase.realtime import (
    RealtimeClient,
    RealtimeSubscription,
)
from lgscoach.infrastructure.supabase.rest import PostgrestClient, encode_filter

__all__ = [
    "PostgrestClient",
    "RealtimeClient",
    "RealtimeSubscription",
    "encode_filter",
]
