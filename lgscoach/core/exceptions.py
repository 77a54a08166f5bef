# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exceptions for the coach notification subsystem.

This module defines the exception hierarchy:
- CoachNotifyError: Base exception for all subsystem errors
- StoreError: A read or write against the hosted store failed
- SubscriptionError: The realtime channel failed to open or dropped
- PermissionDeniedError: Platform notification permission is unavailable
- UnresolvedRecipientError: A student has no associated coach
- WorkerNotReadyError: The worker lacks cached identity or credentials
- CueUnsupportedError: Audio/vibration cue cannot be played here

None of these is meant to reach the coach. Callers at the subsystem
boundary log them and degrade.
"""


class CoachNotifyError(Exception):
    """Base exception for all notification subsystem errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict | None = None):
        """Initialize the error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class StoreError(CoachNotifyError):
    """A request to the hosted relational store failed.

    Raised for transport failures and for non-2xx responses.

    Attributes:
        status_code: HTTP status code, if a response was received.
        response_body: Raw response body if available.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        details: dict | None = None,
    ):
        """Initialize the store error.

        Args:
            message: Human-readable error description.
            status_code: HTTP status code from the response.
            response_body: Raw response body if available.
            details: Optional dictionary with additional error context.
        """
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message, details)

    def __str__(self) -> str:
        """Return string representation with status code."""
        base = self.message
        if self.status_code:
            base = f"[{self.status_code}] {base}"
        if self.details:
            base = f"{base} - Details: {self.details}"
        return base


class SubscriptionError(CoachNotifyError):
    """The realtime subscription could not be established or was lost."""


class PermissionDeniedError(CoachNotifyError):
    """Platform notification permission is denied or unavailable."""


class UnresolvedRecipientError(CoachNotifyError):
    """No coach could be resolved for a student.

    Attributes:
        student_id: The student whose coach is unknown.
    """

    def __init__(self, student_id: str):
        self.student_id = student_id
        super().__init__(f"No coach found for student {student_id}")


class WorkerNotReadyError(CoachNotifyError):
    """The persistent worker has no cached coach identity or credentials."""


class CueUnsupportedError(CoachNotifyError):
    """The audio/vibration cue is not supported in this environment."""
