"""Builders that turn forum activity into notification dispatches."""

from __future__ import annotations

from app.domain.entities import (
    Channel,
    DispatchContext,
    FanoutEvent,
    NotificationContent,
    NotificationTemplate,
    NotificationType,
    RecipientRole,
    User,
)

from .dispatcher import DispatchResult, NotificationDispatcher

REPLY_CREATED = "reply_created"
UPVOTE = "upvote"
DOWNVOTE = "downvote"


def reply_action_url(*, post_slug: str, reply_id: str, forum_slug: str | None = None) -> str:
    if forum_slug:
        return f"/forums/{forum_slug}/posts/{post_slug}#reply-{reply_id}"
    return f"/posts/{post_slug}#reply-{reply_id}"


def _reply_template(title: str, message: str, activity_type: str, **extra_data: str) -> NotificationTemplate:
    return NotificationTemplate(
        title=title,
        message=message,
        type=NotificationType.FAMILY_ACTIVITY.value,
        data={
            "replyId": "{{reply_id}}",
            "postTitle": "{{post_title}}",
            "postSlug": "{{post_slug}}",
            "authorName": "{{author_name}}",
            "activityType": activity_type,
            **extra_data,
        },
        action_url="{{action_url}}",
    )


REPLY_CREATED_TEMPLATES = {
    RecipientRole.POST_AUTHOR: _reply_template(
        "New reply to your post",
        '{{author_name}} replied to your post: "{{post_title}}"',
        "post_replied",
    ),
    RecipientRole.PARENT_REPLY_AUTHOR: _reply_template(
        "Someone replied to your comment",
        '{{author_name}} replied to your comment on: "{{post_title}}"',
        "reply_replied",
    ),
    RecipientRole.THREAD_PARTICIPANT: _reply_template(
        "New activity in a conversation you're part of",
        '{{author_name}} added a reply to: "{{post_title}}"',
        "conversation_activity",
    ),
    RecipientRole.FORUM_MODERATOR: _reply_template(
        "New reply in your moderated forum",
        '{{author_name}} replied in {{forum_title}}: "{{post_title}}"',
        "moderation_activity",
        forumTitle="{{forum_title}}",
    ),
}


def reply_created_event(
    *,
    reply_id: str,
    post_id: str,
    post_title: str,
    post_slug: str,
    author: User,
    parent_reply_id: str | None = None,
    forum_id: str | None = None,
    forum_slug: str | None = None,
    forum_title: str | None = None,
) -> FanoutEvent:
    """Describe a new forum reply as a fanout event."""

    return FanoutEvent(
        actor_id=author.id,
        kind=REPLY_CREATED,
        post_id=post_id,
        parent_reply_id=parent_reply_id,
        forum_id=forum_id,
        templates=REPLY_CREATED_TEMPLATES,
        variables={
            "reply_id": reply_id,
            "post_title": post_title,
            "post_slug": post_slug,
            "author_name": author.display_name,
            "forum_title": forum_title or "Forum",
            "action_url": reply_action_url(
                post_slug=post_slug, reply_id=reply_id, forum_slug=forum_slug
            ),
        },
        context=DispatchContext(sender_name=author.display_name),
    )


async def notify_reply_created(
    dispatcher: NotificationDispatcher, **event_fields
) -> list[DispatchResult]:
    """Notify everyone involved in the thread about a new reply."""

    return await dispatcher.dispatch_fanout(reply_created_event(**event_fields))


async def notify_reply_voted(
    dispatcher: NotificationDispatcher,
    *,
    reply_id: str,
    reply_author_id: str,
    post_id: str,
    post_title: str,
    post_slug: str,
    voter: User,
    vote_type: str,
    forum_slug: str | None = None,
) -> DispatchResult | None:
    """Tell the reply author about a vote. Downvotes never send email."""

    vote = vote_type.lower()
    if vote not in {UPVOTE, DOWNVOTE}:
        raise ValueError(f"Unsupported vote type: {vote_type}")
    if reply_author_id == voter.id:
        return None

    verb = "upvoted" if vote == UPVOTE else "downvoted"
    content = NotificationContent(
        title="Your reply received an upvote" if vote == UPVOTE else "Your reply received a downvote",
        message=f'{voter.display_name} {verb} your reply on: "{post_title}"',
        data={
            "replyId": reply_id,
            "postId": post_id,
            "postTitle": post_title,
            "postSlug": post_slug,
            "voterId": voter.id,
            "voterName": voter.display_name,
            "voteType": vote,
            "activityType": f"reply_{verb}",
        },
        is_actionable=True,
        action_url=reply_action_url(
            post_slug=post_slug, reply_id=reply_id, forum_slug=forum_slug
        ),
    )
    channels = frozenset({Channel.IN_APP, Channel.EMAIL})
    if vote == DOWNVOTE:
        channels = frozenset({Channel.IN_APP})

    return await dispatcher.dispatch(
        reply_author_id,
        NotificationType.FAMILY_ACTIVITY.value,
        content,
        DispatchContext(sender_name=voter.display_name, channels=channels),
    )


__all__ = [
    "REPLY_CREATED",
    "REPLY_CREATED_TEMPLATES",
    "notify_reply_created",
    "notify_reply_voted",
    "reply_action_url",
    "reply_created_event",
]
