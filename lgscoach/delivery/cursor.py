# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-context bookkeeping of delivered notifications."""

import datetime as dt
from dataclasses import dataclass, field

from lgscoach.models.notification import NotificationRecord
from lgscoach.utils.datetime import EPOCH


@dataclass
class DeliveryCursor:
    """What one execution context has already presented.

    Created fresh per page session or worker activation. The id set is
    never evicted during its lifetime.

    Attributes:
        last_check_timestamp: created_at of the newest delivered record,
            or the epoch before the first delivery.
        delivered_ids: Identifiers already presented.
    """

    last_check_timestamp: dt.datetime = EPOCH
    delivered_ids: set[str] = field(default_factory=set)

    def is_new(self, record: NotificationRecord) -> bool:
        """Whether the record has not been presented yet."""
        return record.id not in self.delivered_ids

    def mark(self, record: NotificationRecord) -> bool:
        """Record a delivery.

        Returns:
            True if the record was new, False if it was already marked.
        """
        if record.id in self.delivered_ids:
            return False
        self.delivered_ids.add(record.id)
        if record.created_at > self.last_check_timestamp:
            self.last_check_timestamp = record.created_at
        return True
