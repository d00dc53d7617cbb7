"""FastAPI dependency utilities."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.application.use_cases.notifications import (
    Broadcaster,
    DeliveryDecisionEngine,
    EmailSender,
    NotificationDispatcher,
    NotificationStore,
    PreferenceResolver,
    RecipientDirectory,
    SourceReadReconciler,
)
from app.config import Settings, get_settings
from app.domain.entities import User
from app.infrastructure.database import SessionLocal, get_db
from app.infrastructure.email import SendGridEmailSender
from app.infrastructure.notifications import (
    NotificationConnectionManager,
    RealtimeBroadcaster,
    SqlNotificationStore,
    SqlRecipientDirectory,
    notification_manager,
)
from app.infrastructure.repositories import UserRepository
from app.infrastructure.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str = "Invalid credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_current_user(token: str, db: Session) -> User:
    """Resolve the authenticated user for the provided token."""

    try:
        payload = decode_access_token(token)
    except ValueError as exc:
        raise _unauthorized() from exc

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise _unauthorized()

    user = UserRepository(db).get(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Return the authenticated user from the bearer token."""

    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")
    return resolve_current_user(credentials.credentials, db)


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Ensure the authenticated user is active."""

    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user",
        )
    return current_user


def get_notification_store() -> NotificationStore:
    return SqlNotificationStore(SessionLocal)


def get_recipient_directory() -> RecipientDirectory:
    return SqlRecipientDirectory(SessionLocal)


def get_connection_manager() -> NotificationConnectionManager:
    return notification_manager


def get_broadcaster(
    manager: NotificationConnectionManager = Depends(get_connection_manager),
) -> Broadcaster:
    return RealtimeBroadcaster(manager)


def get_email_sender(settings: Settings = Depends(get_settings)) -> EmailSender:
    return SendGridEmailSender(settings)


def get_preference_resolver(
    store: NotificationStore = Depends(get_notification_store),
) -> PreferenceResolver:
    return PreferenceResolver(store)


def get_source_read_reconciler(
    store: NotificationStore = Depends(get_notification_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    settings: Settings = Depends(get_settings),
) -> SourceReadReconciler:
    return SourceReadReconciler(
        store, broadcaster, scan_limit=settings.source_read_scan_limit
    )


def get_dispatcher(
    store: NotificationStore = Depends(get_notification_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    email_sender: EmailSender = Depends(get_email_sender),
    directory: RecipientDirectory = Depends(get_recipient_directory),
    settings: Settings = Depends(get_settings),
) -> NotificationDispatcher:
    """Assemble a dispatcher wired to the configured infrastructure."""

    return NotificationDispatcher(
        store,
        DeliveryDecisionEngine(PreferenceResolver(store)),
        broadcaster,
        email_sender,
        directory,
        base_url=settings.app_base_url,
        email_timeout=settings.email_send_timeout_seconds,
        fanout_concurrency=settings.notification_fanout_concurrency,
        dispatch_timeout=settings.notification_dispatch_timeout_seconds,
    )
