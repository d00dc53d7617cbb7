"""Notification dispatch, delivery decisions and inbox read-state."""

from .delivery import DecisionReason, DeliveryDecisionEngine
from .dispatcher import (
    ChannelOutcome,
    ChannelStatus,
    DispatchResult,
    DispatchSummary,
    NotificationDispatcher,
    summarize_results,
)
from .errors import (
    DeliveryChannelError,
    NotFoundError,
    NotificationError,
    StoreError,
    ValidationError,
)
from .events import notify_reply_created, notify_reply_voted, reply_created_event
from .fanout import EventFanoutPlanner, PlannedNotification
from .maintenance import purge_expired, purge_old_read
from .ports import (
    Broadcaster,
    EmailSendResult,
    EmailSender,
    FamilyDirectory,
    FanoutLookups,
    NotificationStore,
    RecipientDirectory,
    StaticFamilyDirectory,
    StaticFanoutLookups,
)
from .preferences import PreferenceResolver, update_preferences
from .quiet_hours import QuietHoursCalculator
from .read_state import (
    ALLOWED_SOURCE_FIELDS,
    NotificationListing,
    SourceReadReconciler,
    SourceReadResult,
    acknowledge_notifications,
    delete_notification,
    get_notification,
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)

__all__ = [
    "ALLOWED_SOURCE_FIELDS",
    "Broadcaster",
    "ChannelOutcome",
    "ChannelStatus",
    "DecisionReason",
    "DeliveryChannelError",
    "DeliveryDecisionEngine",
    "DispatchResult",
    "DispatchSummary",
    "EmailSendResult",
    "EmailSender",
    "EventFanoutPlanner",
    "FamilyDirectory",
    "FanoutLookups",
    "NotFoundError",
    "NotificationDispatcher",
    "NotificationError",
    "NotificationListing",
    "NotificationStore",
    "PlannedNotification",
    "PreferenceResolver",
    "QuietHoursCalculator",
    "RecipientDirectory",
    "SourceReadReconciler",
    "SourceReadResult",
    "StaticFamilyDirectory",
    "StaticFanoutLookups",
    "StoreError",
    "ValidationError",
    "acknowledge_notifications",
    "delete_notification",
    "get_notification",
    "list_notifications",
    "mark_all_notifications_read",
    "mark_notification_read",
    "notify_reply_created",
    "notify_reply_voted",
    "purge_expired",
    "purge_old_read",
    "reply_created_event",
    "summarize_results",
    "update_preferences",
]
