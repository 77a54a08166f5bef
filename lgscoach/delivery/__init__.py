# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Foreground notification delivery: realtime, polling and visibility re-sync."""

from lgscoach.delivery.cursor import DeliveryCursor
from lgscoach.delivery.selector import DeliveryChannelSelector, DeliveryState
from lgscoach.delivery.visibility import VisibilityCoordinator

__all__ = [
    "DeliveryChannelSelector",
    "DeliveryCursor",
    "DeliveryState",
    "VisibilityCoordinator",
]
