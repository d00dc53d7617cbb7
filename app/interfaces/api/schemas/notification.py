"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.domain.entities import NotificationType


class CamelModel(BaseModel):
    """Base schema exposing camelCase keys while accepting snake_case too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NotificationRead(CamelModel):
    """Representation of a notification delivered to the client."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str
    user_id: str
    type: str
    title: str
    message: str
    rich_message: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    is_actionable: bool = False
    action_url: str | None = None
    cta_label: str | None = None
    secondary_url: str | None = None
    secondary_label: str | None = None
    image_url: str | None = None
    thumbnail_url: str | None = None
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None


class NotificationPageRead(CamelModel):
    notifications: list[NotificationRead]
    total: int
    page: int
    limit: int
    unread_count: int
    has_next_page: bool
    has_prev_page: bool


class NotificationListResponse(CamelModel):
    success: bool = True
    data: NotificationPageRead


class NotificationResponse(CamelModel):
    success: bool = True
    data: NotificationRead
    message: str | None = None


class MarkedCountRead(CamelModel):
    marked_count: int


class MarkedCountResponse(CamelModel):
    success: bool = True
    data: MarkedCountRead
    message: str


class MarkReadBySourceRequest(CamelModel):
    """Identify the source entity whose notifications should be marked read."""

    source_field: str | None = None
    source_value: str | int | None = None


class NotificationCreate(CamelModel):
    """Payload used to dispatch a notification to a user."""

    target_user_id: str | None = Field(
        default=None, description="Recipient; defaults to the authenticated user"
    )
    type: NotificationType = NotificationType.SYSTEM_ANNOUNCEMENT
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    rich_message: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    is_actionable: bool = False
    action_url: str | None = Field(default=None, max_length=500)
    cta_label: str | None = Field(default=None, max_length=100)
    image_url: str | None = Field(default=None, max_length=500)
    expires_at: datetime | None = None


class ChannelOutcomeRead(CamelModel):
    status: str
    reason: str | None = None
    message_id: str | None = None


class DeliveryRead(CamelModel):
    in_app: ChannelOutcomeRead
    email: ChannelOutcomeRead
    errors: list[str] = Field(default_factory=list)


class NotificationDispatchResponse(CamelModel):
    success: bool = True
    data: NotificationRead
    delivery: DeliveryRead
    message: str = "Notification created successfully"


__all__ = [
    "CamelModel",
    "ChannelOutcomeRead",
    "DeliveryRead",
    "MarkReadBySourceRequest",
    "MarkedCountRead",
    "MarkedCountResponse",
    "NotificationCreate",
    "NotificationDispatchResponse",
    "NotificationListResponse",
    "NotificationPageRead",
    "NotificationRead",
    "NotificationResponse",
]
