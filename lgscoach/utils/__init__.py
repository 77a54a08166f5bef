# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared utilities: logging setup and datetime helpers."""

from lgscoach.utils.datetime import EPOCH, ensure_utc, parse_timestamp, utc_now
from lgscoach.utils.logging import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
    unbind_context,
)

__all__ = [
    "EPOCH",
    "ensure_utc",
    "parse_timestamp",
    "utc_now",
    "bind_context",
    "clear_context",
    "get_logger",
    "setup_logging",
    "unbind_context",
]
