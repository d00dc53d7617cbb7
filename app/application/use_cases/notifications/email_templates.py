"""Email subject and body rendering per notification type."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Callable

from app.domain.entities import DispatchContext, Notification, NotificationType

DEFAULT_AUTHOR = "Living & Leaving Team"


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html_content: str


def _absolute_url(action_url: str | None, base_url: str) -> str | None:
    if not action_url:
        return None
    if action_url.startswith(("http://", "https://")):
        return action_url
    return f"{base_url.rstrip('/')}/{action_url.lstrip('/')}"


def _paragraphs(*lines: str | None) -> str:
    return "".join(f"<p>{line}</p>" for line in lines if line)


def _call_to_action(notification: Notification, base_url: str, default_label: str) -> str | None:
    url = _absolute_url(notification.action_url, base_url)
    if url is None:
        return None
    label = escape(notification.cta_label or default_label)
    return f'<a href="{escape(url, quote=True)}">{label}</a>'


def _message(notification: Notification, context: DispatchContext, base_url: str) -> RenderedEmail:
    sender = context.sender_name or "Someone"
    conversation = context.extra.get("conversation_title")
    subject = f"New message from {sender}"
    if conversation:
        subject = f"{subject} in {conversation}"
    html_content = _paragraphs(
        f"Hi {escape(context.recipient_name or 'there')},",
        f"<strong>{escape(sender)}</strong> sent you a message:",
        f"<em>{escape(notification.message)}</em>",
        _call_to_action(notification, base_url, "Open conversation"),
    )
    return RenderedEmail(subject, html_content)


def _care_update(notification: Notification, context: DispatchContext, base_url: str) -> RenderedEmail:
    family = context.family_name
    subject = f"Care update: {notification.title}"
    if family:
        subject = f"Care update for {family}: {notification.title}"
    author = context.extra.get("update_author") or context.sender_name or "System"
    html_content = _paragraphs(
        f"Hi {escape(context.recipient_name or 'there')},",
        f"{escape(str(author))} shared an update: <strong>{escape(notification.title)}</strong>",
        escape(notification.message),
        _call_to_action(notification, base_url, "View update"),
    )
    return RenderedEmail(subject, html_content)


def _emergency_alert(notification: Notification, context: DispatchContext, base_url: str) -> RenderedEmail:
    severity = str(context.extra.get("severity") or "medium")
    contact = context.extra.get("contact_info")
    html_content = _paragraphs(
        f"Hi {escape(context.recipient_name or 'there')},",
        f"<strong>Emergency alert ({escape(severity)}):</strong> {escape(notification.title)}",
        escape(notification.message),
        f"Contact: {escape(str(contact))}" if contact else None,
        _call_to_action(notification, base_url, "View alert"),
    )
    return RenderedEmail(f"URGENT: {notification.title}", html_content)


def _announcement(notification: Notification, context: DispatchContext, base_url: str) -> RenderedEmail:
    author = context.extra.get("author_name") or DEFAULT_AUTHOR
    html_content = _paragraphs(
        f"Hi {escape(context.recipient_name or 'there')},",
        f"<strong>{escape(notification.title)}</strong>",
        escape(notification.message),
        f"&mdash; {escape(str(author))}",
        _call_to_action(notification, base_url, "Read more"),
    )
    return RenderedEmail(notification.title, html_content)


def _family_activity(notification: Notification, context: DispatchContext, base_url: str) -> RenderedEmail:
    family = context.family_name
    subject = f"{family}: {notification.title}" if family else notification.title
    html_content = _paragraphs(
        f"Hi {escape(context.recipient_name or 'there')},",
        escape(notification.message),
        _call_to_action(notification, base_url, "See activity"),
    )
    return RenderedEmail(subject, html_content)


EmailRenderer = Callable[[Notification, DispatchContext, str], RenderedEmail]

EMAIL_RENDERERS: dict[str, EmailRenderer] = {
    NotificationType.MESSAGE.value: _message,
    NotificationType.CARE_UPDATE.value: _care_update,
    NotificationType.EMERGENCY_ALERT.value: _emergency_alert,
    NotificationType.SYSTEM_ANNOUNCEMENT.value: _announcement,
    NotificationType.FAMILY_ACTIVITY.value: _family_activity,
}


def render_email(
    notification: Notification, context: DispatchContext, *, base_url: str
) -> RenderedEmail:
    """Render the email for ``notification``; unknown types use the announcement layout."""

    renderer = EMAIL_RENDERERS.get(notification.type, _announcement)
    return renderer(notification, context, base_url)


__all__ = ["EMAIL_RENDERERS", "RenderedEmail", "render_email"]
