# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Messages exchanged between a page and the persistent worker.

Messages cross the boundary as JSON text only; neither side holds a
reference to the other's objects. Page->worker messages form a closed
union discriminated by ``type``::

    {"type": "SHOW_NOTIFICATION", "title": "...", "body": "...", "tag": "..."}
    {"type": "STORE_COACH_DATA", "coach": {"id": "c1", "fullName": "...", "email": "..."}}
    {"type": "STORE_SUPABASE_CREDENTIALS", "credentials": {"url": "...", "anonKey": "..."}}
    {"type": "VISIBILITY_CHANGE", "isVisible": false}

The worker answers notification clicks with NOTIFICATION_CLICKED.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from lgscoach.models.coaching import CoachIdentity


class _Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ShowNotification(_Message):
    """Ask the worker to show a system notification now."""

    type: Literal["SHOW_NOTIFICATION"] = "SHOW_NOTIFICATION"
    title: str
    body: str = ""
    icon: str | None = None
    tag: str | None = None


class StoreCoachData(_Message):
    """Cache the coach identity in the worker."""

    type: Literal["STORE_COACH_DATA"] = "STORE_COACH_DATA"
    coach: CoachIdentity


class SupabaseCredentials(_Message):
    """Backend connection info. The key is a bearer credential."""

    url: str
    anon_key: str = Field(alias="anonKey")


class StoreSupabaseCredentials(_Message):
    """Cache backend credentials in the worker."""

    type: Literal["STORE_SUPABASE_CREDENTIALS"] = "STORE_SUPABASE_CREDENTIALS"
    credentials: SupabaseCredentials


class VisibilityChange(_Message):
    """Informational page visibility signal."""

    type: Literal["VISIBILITY_CHANGE"] = "VISIBILITY_CHANGE"
    is_visible: bool = Field(alias="isVisible")


WorkerMessage = Annotated[
    Union[ShowNotification, StoreCoachData, StoreSupabaseCredentials, VisibilityChange],
    Field(discriminator="type"),
]


class NotificationClicked(_Message):
    """Worker->page: the coach clicked a system notification."""

    type: Literal["NOTIFICATION_CLICKED"] = "NOTIFICATION_CLICKED"
    action: str
    url: str
    notification_id: str | None = Field(default=None, alias="notificationId")


_adapter: TypeAdapter[WorkerMessage] = TypeAdapter(WorkerMessage)


def parse_message(raw: str | bytes | dict[str, Any]) -> WorkerMessage:
    """Decode a page->worker message.

    Raises:
        pydantic.ValidationError: If the message is malformed or its
            type is unknown.
    """
    if isinstance(raw, dict):
        return _adapter.validate_python(raw)
    return _adapter.validate_json(raw)


def encode_message(message: BaseModel) -> str:
    """Encode a message with its wire (camelCase) field names."""
    return message.model_dump_json(by_alias=True)
