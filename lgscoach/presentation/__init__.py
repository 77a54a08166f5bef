# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Turning notification records into user-visible alerts."""

from lgscoach.presentation.base import (
    LogNotifier,
    NotificationAction,
    NotificationPermission,
    PlatformNotification,
    PlatformNotifier,
)
from lgscoach.presentation.cue import CueSpec, TerminalCue
from lgscoach.presentation.presenter import NotificationPresenter
from lgscoach.presentation.push import WebPushNotifier
from lgscoach.presentation.toast import Toast, ToastCenter, ToastEvent

__all__ = [
    "CueSpec",
    "LogNotifier",
    "NotificationAction",
    "NotificationPermission",
    "NotificationPresenter",
    "PlatformNotification",
    "PlatformNotifier",
    "TerminalCue",
    "Toast",
    "ToastCenter",
    "ToastEvent",
    "WebPushNotifier",
]
