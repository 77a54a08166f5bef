# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification rows: creation, queries, acknowledgment and activity triggers."""

from lgscoach.notifications.repository import NotificationRepository, parse_records
from lgscoach.notifications.templates import TEMPLATES, render
from lgscoach.notifications.triggers import ActivityNotifier

__all__ = [
    "ActivityNotifier",
    "NotificationRepository",
    "TEMPLATES",
    "parse_records",
    "render",
]
