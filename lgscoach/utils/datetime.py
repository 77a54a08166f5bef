# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities.

All timestamps exchanged with the hosted store are timezone-aware UTC
(PostgreSQL TIMESTAMPTZ). These helpers keep naive datetimes out of the
"new since last check" comparisons.
"""

from datetime import datetime, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return value as an aware UTC datetime.

    Naive datetimes are assumed to already be in UTC.

    Args:
        value: Datetime to normalize.

    Returns:
        Timezone-aware UTC datetime.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: str | None) -> datetime:
    """Parse an ISO-8601 timestamp, falling back to the epoch.

    Accepts the trailing ``Z`` form produced by JavaScript clients.

    Args:
        value: ISO-8601 string or None.

    Returns:
        Timezone-aware UTC datetime.
    """
    if not value:
        return EPOCH
    try:
        return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return EPOCH
