from .notification import (
    ChannelOutcomeRead,
    DeliveryRead,
    MarkReadBySourceRequest,
    MarkedCountRead,
    MarkedCountResponse,
    NotificationCreate,
    NotificationDispatchResponse,
    NotificationListResponse,
    NotificationPageRead,
    NotificationRead,
    NotificationResponse,
)
from .preferences import (
    NotificationPreferencesRead,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
)

__all__ = [
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
    "NotificationPreferencesRead",
    "NotificationPreferencesResponse",
    "NotificationPreferencesUpdate",
]
