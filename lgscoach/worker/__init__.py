# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Persistent background worker and its page-side bridge."""

from lgscoach.worker.bridge import WorkerBridge
from lgscoach.worker.messages import (
    NotificationClicked,
    ShowNotification,
    StoreCoachData,
    StoreSupabaseCredentials,
    SupabaseCredentials,
    VisibilityChange,
    WorkerMessage,
    encode_message,
    parse_message,
)
from lgscoach.worker.service import PersistentWorker, WorkerState, build_repository
from lgscoach.worker.storage import WorkerStorage

__all__ = [
    "NotificationClicked",
    "PersistentWorker",
    "ShowNotification",
    "StoreCoachData",
    "StoreSupabaseCredentials",
    "SupabaseCredentials",
    "VisibilityChange",
    "WorkerBridge",
    "WorkerMessage",
    "WorkerState",
    "WorkerStorage",
    "build_repository",
    "encode_message",
    "parse_message",
]
