"""Expansion of one domain event into distinct per-recipient notifications."""

from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, Callable, Iterable, Mapping, NamedTuple

from app.domain.entities import (
    FanoutEvent,
    NotificationContent,
    NotificationPayload,
    NotificationTemplate,
    RecipientRole,
)

from .ports import FanoutLookups

logger = logging.getLogger(__name__)

_PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


class PlannedNotification(NamedTuple):
    recipient_id: str
    payload: NotificationPayload


def interpolate(template: str | None, variables: Mapping[str, Any]) -> str | None:
    """Replace ``{{name}}`` placeholders; unknown names render as ``""``."""

    if template is None:
        return None

    def _replace(match: re.Match[str]) -> str:
        value = variables.get(match.group(1))
        return "" if value is None else str(value)

    return _PLACEHOLDER_PATTERN.sub(_replace, template)


def render_template(
    template: NotificationTemplate,
    role: RecipientRole,
    event: FanoutEvent,
) -> NotificationPayload:
    """Render ``template`` for one recipient of ``event``."""

    variables = {
        "post_id": event.post_id,
        "parent_reply_id": event.parent_reply_id,
        "forum_id": event.forum_id,
        **event.variables,
    }
    data: dict[str, Any] = {"postId": event.post_id, "authorId": event.actor_id}
    if event.parent_reply_id:
        data["parentReplyId"] = event.parent_reply_id
    if event.forum_id:
        data["forumId"] = event.forum_id
    for key, value in template.data.items():
        data[key] = interpolate(value, variables) if isinstance(value, str) else value
    data.setdefault("activityType", event.kind)

    content = NotificationContent(
        title=interpolate(template.title, variables) or "",
        message=interpolate(template.message, variables) or "",
        data=data,
        is_actionable=template.is_actionable,
        action_url=interpolate(template.action_url, variables),
    )
    return NotificationPayload(role=role, type=template.type, content=content)


class EventFanoutPlanner:
    """Compute the ordered, de-duplicated recipients of a forum event.

    Stages run in a fixed order (post author, parent-reply author, other
    thread participants, forum moderators). The event actor and any id
    claimed by an earlier stage are skipped, so a user who fits several
    roles is notified once with the framing of the first matching stage. A
    lookup failure empties only its own stage.
    """

    def __init__(self, lookups: FanoutLookups) -> None:
        self._lookups = lookups

    async def plan(self, event: FanoutEvent) -> list[PlannedNotification]:
        chosen: set[str] = {event.actor_id}
        planned: list[PlannedNotification] = []

        for role, load in self._stages(event):
            template = event.templates.get(role)
            if template is None:
                continue
            try:
                candidates = list(await load())
            except Exception:
                logger.warning(
                    "Skipping %s recipients for %s on post %s: lookup failed",
                    role.value,
                    event.kind,
                    event.post_id,
                    exc_info=True,
                )
                continue

            for candidate in candidates:
                if not candidate or candidate in chosen:
                    continue
                chosen.add(candidate)
                planned.append(
                    PlannedNotification(candidate, render_template(template, role, event))
                )

        logger.debug(
            "Planned %s recipients for %s on post %s", len(planned), event.kind, event.post_id
        )
        return planned

    def _stages(
        self, event: FanoutEvent
    ) -> list[tuple[RecipientRole, Callable[[], Awaitable[Iterable[str]]]]]:
        async def post_author() -> Iterable[str]:
            author = await self._lookups.post_author(event.post_id)
            return [author] if author else []

        async def parent_reply_author() -> Iterable[str]:
            if not event.parent_reply_id:
                return []
            author = await self._lookups.reply_author(event.parent_reply_id)
            return [author] if author else []

        async def thread_participants() -> Iterable[str]:
            return await self._lookups.thread_participants(event.post_id)

        async def forum_moderators() -> Iterable[str]:
            if not event.forum_id:
                return []
            members = await self._lookups.forum_members(event.forum_id)
            return [
                member.user_id
                for member in members
                if member.is_moderator() and member.notifications_enabled
            ]

        return [
            (RecipientRole.POST_AUTHOR, post_author),
            (RecipientRole.PARENT_REPLY_AUTHOR, parent_reply_author),
            (RecipientRole.THREAD_PARTICIPANT, thread_participants),
            (RecipientRole.FORUM_MODERATOR, forum_moderators),
        ]


__all__ = [
    "EventFanoutPlanner",
    "PlannedNotification",
    "interpolate",
    "render_template",
]
