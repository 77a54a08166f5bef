# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Coach notification delivery for the LGS coaching application.

Student activity creates notification rows in the hosted store; a coach's
page receives them through realtime or polling, and a persistent worker
keeps surfacing them while no page is open.
"""

__version__ = "0.1.0"
