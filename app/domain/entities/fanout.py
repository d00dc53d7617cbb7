"""Ephemeral entities describing a domain event expanded to many recipients."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from .notification import Channel, NotificationContent, NotificationType


class RecipientRole(str, Enum):
    """Why a recipient is notified about an event, in stage order."""

    POST_AUTHOR = "post_author"
    PARENT_REPLY_AUTHOR = "parent_reply_author"
    THREAD_PARTICIPANT = "thread_participant"
    FORUM_MODERATOR = "forum_moderator"


MODERATION_ROLES = frozenset({"moderator", "admin"})


@dataclass(frozen=True)
class ForumMember:
    """Membership of a user in a forum, as reported by the forum lookups."""

    user_id: str
    role: str
    notifications_enabled: bool = True

    def is_moderator(self) -> bool:
        return self.role.lower() in MODERATION_ROLES


@dataclass
class DispatchContext:
    """Values used to render emails, plus the channels the caller asks for."""

    recipient_name: str | None = None
    sender_name: str | None = None
    family_name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    channels: frozenset[Channel] = frozenset({Channel.IN_APP, Channel.EMAIL})

    def wants(self, channel: Channel) -> bool:
        return channel in self.channels


@dataclass(frozen=True)
class NotificationTemplate:
    """Title/message/data pattern rendered once per recipient.

    ``{{name}}`` placeholders are replaced with the event variables; missing
    variables render as an empty string.
    """

    title: str
    message: str
    type: str = NotificationType.FAMILY_ACTIVITY.value
    data: Mapping[str, Any] = field(default_factory=dict)
    action_url: str | None = None
    is_actionable: bool = True


@dataclass(frozen=True)
class NotificationPayload:
    """What a single recipient receives for an event."""

    role: RecipientRole
    type: str
    content: NotificationContent


@dataclass
class FanoutEvent:
    """A domain occurrence to expand into per-recipient notifications."""

    actor_id: str
    kind: str
    post_id: str
    templates: Mapping[RecipientRole, NotificationTemplate]
    parent_reply_id: str | None = None
    forum_id: str | None = None
    variables: Mapping[str, Any] = field(default_factory=dict)
    context: DispatchContext = field(default_factory=DispatchContext)


__all__ = [
    "DispatchContext",
    "FanoutEvent",
    "ForumMember",
    "MODERATION_ROLES",
    "NotificationPayload",
    "NotificationTemplate",
    "RecipientRole",
]
