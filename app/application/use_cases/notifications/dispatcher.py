"""Persist notifications and deliver them over the enabled channels."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Awaitable, Callable, Iterable, Sequence

import anyio

from app.domain.entities import (
    Channel,
    DispatchContext,
    FanoutEvent,
    Notification,
    NotificationContent,
    type_key,
)

from .delivery import DecisionReason, DeliveryDecisionEngine
from .email_templates import render_email
from .errors import DeliveryChannelError, NotFoundError
from .fanout import EventFanoutPlanner
from .ports import (
    Broadcaster,
    EmailSender,
    FamilyDirectory,
    NotificationStore,
    RecipientDirectory,
)

logger = logging.getLogger(__name__)


class ChannelStatus(str, Enum):
    DELIVERED = "delivered"
    SUPPRESSED = "suppressed"
    FAILED = "failed"
    NOT_REQUESTED = "not_requested"


@dataclass
class ChannelOutcome:
    status: ChannelStatus
    reason: str | None = None
    message_id: str | None = None


@dataclass
class DispatchResult:
    """What happened to one recipient's notification.

    ``notification`` is ``None`` only when persisting failed, in which case
    ``error`` holds the cause. When ``error`` is set alongside a stored
    ``notification`` the row exists but delivery was cut short, and the
    channels still in flight are reported as failed with ``"interrupted"``.
    """

    recipient_id: str
    notification: Notification | None = None
    in_app: ChannelOutcome = field(
        default_factory=lambda: ChannelOutcome(ChannelStatus.NOT_REQUESTED)
    )
    email: ChannelOutcome = field(
        default_factory=lambda: ChannelOutcome(ChannelStatus.NOT_REQUESTED)
    )
    errors: list[DeliveryChannelError] = field(default_factory=list)
    error: Exception | None = None

    @property
    def persisted(self) -> bool:
        return self.notification is not None

    @property
    def incomplete(self) -> bool:
        return self.persisted and self.error is not None

    @property
    def success(self) -> bool:
        return self.persisted and self.error is None

    @property
    def delivered(self) -> bool:
        return self.in_app.status is ChannelStatus.DELIVERED

    @property
    def email_sent(self) -> bool:
        return self.email.status is ChannelStatus.DELIVERED


@dataclass(frozen=True)
class DispatchSummary:
    success_count: int
    failure_count: int
    delivered_count: int
    email_count: int
    incomplete_count: int = 0


def summarize_results(results: Sequence[DispatchResult]) -> DispatchSummary:
    success_count = sum(1 for result in results if result.success)
    return DispatchSummary(
        success_count=success_count,
        failure_count=len(results) - success_count,
        delivered_count=sum(1 for result in results if result.delivered),
        email_count=sum(1 for result in results if result.email_sent),
        incomplete_count=sum(1 for result in results if result.incomplete),
    )


@dataclass(frozen=True)
class _DispatchJob:
    user_id: str
    notification_type: str
    content: NotificationContent
    context: DispatchContext


ChannelDelivery = Callable[[Notification, DispatchContext], Awaitable[ChannelOutcome]]


class NotificationDispatcher:
    """Orchestrate persistence, delivery decisions and channel side effects.

    The notification row is written before any channel is consulted so the
    in-app history stays complete even when every channel is suppressed. A
    failing channel is recorded on the :class:`DispatchResult` and never
    affects the other channel or the stored row.
    """

    def __init__(
        self,
        store: NotificationStore,
        decisions: DeliveryDecisionEngine,
        broadcaster: Broadcaster,
        email_sender: EmailSender,
        directory: RecipientDirectory,
        *,
        planner: EventFanoutPlanner | None = None,
        families: FamilyDirectory | None = None,
        base_url: str = "",
        email_timeout: float = 10.0,
        fanout_concurrency: int = 8,
        dispatch_timeout: float | None = None,
    ) -> None:
        self._store = store
        self._decisions = decisions
        self._broadcaster = broadcaster
        self._email_sender = email_sender
        self._directory = directory
        self._planner = planner
        self._families = families
        self._base_url = base_url
        self._email_timeout = email_timeout
        self._fanout_concurrency = fanout_concurrency
        self._dispatch_timeout = dispatch_timeout

    async def dispatch(
        self,
        user_id: str,
        notification_type: str,
        content: NotificationContent,
        context: DispatchContext | None = None,
    ) -> DispatchResult:
        """Persist one notification for ``user_id`` and deliver it.

        Raises :class:`StoreError` when the notification cannot be persisted.
        """

        result = DispatchResult(recipient_id=user_id)
        await self._dispatch_into(
            result, notification_type, content, context or DispatchContext()
        )
        return result

    async def dispatch_bulk(
        self,
        user_ids: Iterable[str],
        notification_type: str,
        content: NotificationContent,
        context: DispatchContext | None = None,
    ) -> list[DispatchResult]:
        """Dispatch the same content to each distinct user in ``user_ids``."""

        context = context or DispatchContext()
        unique_ids = list(dict.fromkeys(user_id for user_id in user_ids if user_id))
        jobs = [
            _DispatchJob(user_id, notification_type, content, context)
            for user_id in unique_ids
        ]
        results = await self._dispatch_many(jobs)
        self._log_summary("bulk", type_key(notification_type), results)
        return results

    async def dispatch_family(
        self,
        family_id: str,
        notification_type: str,
        content: NotificationContent,
        context: DispatchContext | None = None,
        *,
        exclude_user_ids: Iterable[str] = (),
    ) -> list[DispatchResult]:
        """Dispatch to every member of ``family_id`` with an email address.

        Each member is greeted by name and the family name is carried into
        the email. Raises :class:`NotFoundError` when the family is unknown
        or has no members.
        """

        if self._families is None:
            raise RuntimeError("A family directory is required to dispatch family notifications")

        family = await self._families.get_family(family_id)
        if family is None or not family.members:
            raise NotFoundError("Family not found or has no members")

        base = context or DispatchContext()
        skipped = set(exclude_user_ids)
        jobs: list[_DispatchJob] = []
        for member in family.members:
            if member.id in skipped or not member.email:
                continue
            skipped.add(member.id)
            member_context = replace(
                base, recipient_name=member.display_name, family_name=family.name
            )
            jobs.append(_DispatchJob(member.id, notification_type, content, member_context))

        results = await self._dispatch_many(jobs)
        self._log_summary("family", family.id, results)
        return results

    async def dispatch_fanout(
        self, event: FanoutEvent, *, planner: EventFanoutPlanner | None = None
    ) -> list[DispatchResult]:
        """Plan the recipients of ``event`` and dispatch to each independently."""

        planner = planner or self._planner
        if planner is None:
            raise RuntimeError("A fanout planner is required to dispatch fanout events")

        planned = await planner.plan(event)
        jobs = [
            _DispatchJob(item.recipient_id, item.payload.type, item.payload.content, event.context)
            for item in planned
        ]
        results = await self._dispatch_many(jobs)
        self._log_summary("fanout", event.kind, results)
        return results

    async def _dispatch_many(self, jobs: Sequence[_DispatchJob]) -> list[DispatchResult]:
        results: list[DispatchResult | None] = [None] * len(jobs)
        limiter = anyio.CapacityLimiter(self._fanout_concurrency)

        async def run(index: int, job: _DispatchJob) -> None:
            async with limiter:
                results[index] = await self._dispatch_isolated(job)

        async with anyio.create_task_group() as task_group:
            for index, job in enumerate(jobs):
                task_group.start_soon(run, index, job)

        return [result for result in results if result is not None]

    async def _dispatch_isolated(self, job: _DispatchJob) -> DispatchResult:
        result = DispatchResult(recipient_id=job.user_id)
        try:
            with anyio.fail_after(self._dispatch_timeout):
                await self._dispatch_into(
                    result, job.notification_type, job.content, job.context
                )
        except Exception as exc:
            result.error = exc
            if result.notification is None:
                logger.error(
                    "Dispatch to user %s failed: %s", job.user_id, exc, exc_info=True
                )
            else:
                logger.error(
                    "Notification %s stored for user %s but delivery did not complete: %r",
                    result.notification.id,
                    job.user_id,
                    exc,
                )
                self._mark_interrupted(result, job.context)
        return result

    async def _dispatch_into(
        self,
        result: DispatchResult,
        notification_type: str,
        content: NotificationContent,
        context: DispatchContext,
    ) -> None:
        notification = Notification.from_content(
            user_id=result.recipient_id, notification_type=notification_type, content=content
        )
        saved = await self._store.create(notification)
        result.notification = saved
        logger.info(
            "Notification %s created for user %s (%s)", saved.id, saved.user_id, saved.type
        )

        result.in_app = await self._run_channel(
            Channel.IN_APP, saved, context, result, self._deliver_in_app
        )
        result.email = await self._run_channel(
            Channel.EMAIL, saved, context, result, self._deliver_email
        )

    @staticmethod
    def _mark_interrupted(result: DispatchResult, context: DispatchContext) -> None:
        interrupted = ChannelOutcome(ChannelStatus.FAILED, reason="interrupted")
        if context.wants(Channel.IN_APP) and result.in_app.status is ChannelStatus.NOT_REQUESTED:
            result.in_app = interrupted
        if context.wants(Channel.EMAIL) and result.email.status is ChannelStatus.NOT_REQUESTED:
            result.email = interrupted

    async def _run_channel(
        self,
        channel: Channel,
        notification: Notification,
        context: DispatchContext,
        result: DispatchResult,
        deliver: ChannelDelivery,
    ) -> ChannelOutcome:
        if not context.wants(channel):
            return ChannelOutcome(ChannelStatus.NOT_REQUESTED)
        try:
            reason = await self._decisions.decide(
                notification.user_id, notification.type, channel
            )
            if reason is not DecisionReason.ALLOWED:
                return ChannelOutcome(ChannelStatus.SUPPRESSED, reason=reason.value)
            return await deliver(notification, context)
        except DeliveryChannelError as exc:
            failure = exc
        except Exception as exc:
            failure = DeliveryChannelError(channel.value, str(exc) or type(exc).__name__)
            failure.__cause__ = exc

        logger.warning(
            "Notification %s: %s", notification.id, failure, exc_info=failure.__cause__ is not None
        )
        result.errors.append(failure)
        return ChannelOutcome(ChannelStatus.FAILED, reason=failure.reason)

    async def _deliver_in_app(
        self, notification: Notification, context: DispatchContext
    ) -> ChannelOutcome:
        await self._broadcaster.push_notification(notification)
        unread = await self._store.count_unread(notification.user_id)
        await self._broadcaster.push_unread_count(notification.user_id, unread)
        return ChannelOutcome(ChannelStatus.DELIVERED)

    async def _deliver_email(
        self, notification: Notification, context: DispatchContext
    ) -> ChannelOutcome:
        recipient = await self._directory.get_recipient(notification.user_id)
        if recipient is None or not recipient.email:
            raise DeliveryChannelError(Channel.EMAIL.value, "recipient has no email address")
        if not context.recipient_name:
            context = replace(context, recipient_name=recipient.display_name)

        rendered = render_email(notification, context, base_url=self._base_url)
        try:
            with anyio.fail_after(self._email_timeout):
                sent = await self._email_sender.send(
                    recipient.email,
                    rendered.subject,
                    rendered.html_content,
                    {
                        "notification_id": notification.id,
                        "user_id": notification.user_id,
                        "type": notification.type,
                    },
                )
        except TimeoutError as exc:
            raise DeliveryChannelError(
                Channel.EMAIL.value, f"timed out after {self._email_timeout}s"
            ) from exc

        if not sent.success:
            raise DeliveryChannelError(Channel.EMAIL.value, sent.error or "unknown error")
        return ChannelOutcome(ChannelStatus.DELIVERED, message_id=sent.message_id)

    @staticmethod
    def _log_summary(kind: str, label: str, results: Sequence[DispatchResult]) -> None:
        summary = summarize_results(results)
        logger.info(
            "Notification %s dispatch for %s complete: total=%s success=%s failed=%s incomplete=%s delivered=%s emailed=%s",
            kind,
            label,
            len(results),
            summary.success_count,
            summary.failure_count,
            summary.incomplete_count,
            summary.delivered_count,
            summary.email_count,
        )


__all__ = [
    "ChannelOutcome",
    "ChannelStatus",
    "DispatchResult",
    "DispatchSummary",
    "NotificationDispatcher",
    "summarize_results",
]
