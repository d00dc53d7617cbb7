"""SQLAlchemy model for persisted notifications."""

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, JSON, String, Text

from app.infrastructure.database import Base
from app.utils import ensure_naive_utc, utc_now


def _now_naive_utc():
    return ensure_naive_utc(utc_now())


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"
    __table_args__ = (
        Index("ix_notification_user_read", "user_id", "is_read"),
    )

    id = Column(String(32), primary_key=True, default=lambda: uuid4().hex)
    user_id = Column(String(32), ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    rich_message = Column(Text, nullable=True)
    data = Column(JSON, nullable=False, default=dict)
    is_actionable = Column(Boolean, nullable=False, default=False)
    action_url = Column(String(500), nullable=True)
    cta_label = Column(String(100), nullable=True)
    secondary_url = Column(String(500), nullable=True)
    secondary_label = Column(String(100), nullable=True)
    image_url = Column(String(500), nullable=True)
    thumbnail_url = Column(String(500), nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=_now_naive_utc, index=True)
    expires_at = Column(DateTime(), nullable=True, index=True)


__all__ = ["NotificationModel"]
