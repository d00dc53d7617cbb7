"""Endpoints and websocket handler for user notifications."""

from __future__ import annotations

import logging

from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from app.application.use_cases.notifications import (
    ALLOWED_SOURCE_FIELDS,
    Broadcaster,
    DispatchResult,
    NotFoundError,
    NotificationDispatcher,
    NotificationError,
    NotificationStore,
    PreferenceResolver,
    RecipientDirectory,
    SourceReadReconciler,
    StoreError,
    ValidationError,
    acknowledge_notifications,
    delete_notification,
    get_notification,
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
    update_preferences,
)
from app.application.use_cases.notifications.read_state import invalid_source_field_message
from app.domain.entities import (
    DispatchContext,
    Notification,
    NotificationContent,
    NotificationFilters,
    Pagination,
    PreferencesUpdate,
    User,
)
from app.infrastructure.database import SessionLocal
from app.infrastructure.notifications import (
    NotificationConnectionManager,
    serialize_notification,
)
from app.interfaces.api.dependencies import (
    get_broadcaster,
    get_connection_manager,
    get_current_active_user,
    get_dispatcher,
    get_notification_store,
    get_preference_resolver,
    get_recipient_directory,
    get_source_read_reconciler,
    resolve_current_user,
)
from app.interfaces.api.schemas import (
    ChannelOutcomeRead,
    DeliveryRead,
    MarkReadBySourceRequest,
    MarkedCountRead,
    MarkedCountResponse,
    NotificationCreate,
    NotificationDispatchResponse,
    NotificationListResponse,
    NotificationPageRead,
    NotificationPreferencesRead,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    NotificationRead,
    NotificationResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

INIT_NOTIFICATION_LIMIT = 20


def _to_http_error(exc: NotificationError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    logger.error("Notification request failed: %s", exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Notification storage is unavailable",
    )


def _notification_to_schema(notification: Notification) -> NotificationRead:
    return NotificationRead.model_validate(notification)


def _delivery_to_schema(result: DispatchResult) -> DeliveryRead:
    return DeliveryRead(
        in_app=ChannelOutcomeRead(
            status=result.in_app.status.value,
            reason=result.in_app.reason,
            message_id=result.in_app.message_id,
        ),
        email=ChannelOutcomeRead(
            status=result.email.status.value,
            reason=result.email.reason,
            message_id=result.email.message_id,
        ),
        errors=[str(error) for error in result.errors],
    )


@router.get("", response_model=NotificationListResponse)
async def list_notifications_route(
    is_read: bool | None = Query(default=None, alias="isRead"),
    notification_type: str | None = Query(default=None, alias="type"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    store: NotificationStore = Depends(get_notification_store),
) -> NotificationListResponse:
    """Return a page of the authenticated user's notifications, newest first."""

    try:
        listing = await list_notifications(
            store,
            current_user.id,
            NotificationFilters(is_read=is_read, type=notification_type or None),
            Pagination(page=page, limit=limit),
        )
    except NotificationError as exc:
        raise _to_http_error(exc) from exc

    return NotificationListResponse(
        data=NotificationPageRead(
            notifications=[_notification_to_schema(item) for item in listing.page.items],
            total=listing.page.total,
            page=listing.page.page,
            limit=listing.page.limit,
            unread_count=listing.unread_count,
            has_next_page=listing.page.has_next_page,
            has_prev_page=listing.page.has_prev_page,
        )
    )


@router.post(
    "",
    response_model=NotificationDispatchResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_notification_route(
    payload: NotificationCreate,
    current_user: User = Depends(get_current_active_user),
    directory: RecipientDirectory = Depends(get_recipient_directory),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> NotificationDispatchResponse:
    """Persist a notification for a user and deliver it over the enabled channels."""

    target_user_id = payload.target_user_id or current_user.id
    try:
        if target_user_id != current_user.id and await directory.get_recipient(target_user_id) is None:
            raise NotFoundError("Target user not found")
        result = await dispatcher.dispatch(
            target_user_id,
            payload.type.value,
            NotificationContent(
                title=payload.title,
                message=payload.message,
                data=payload.data,
                rich_message=payload.rich_message,
                is_actionable=payload.is_actionable,
                action_url=payload.action_url,
                cta_label=payload.cta_label,
                image_url=payload.image_url,
                expires_at=payload.expires_at,
            ),
            DispatchContext(sender_name=current_user.display_name),
        )
    except NotificationError as exc:
        raise _to_http_error(exc) from exc

    return NotificationDispatchResponse(
        data=_notification_to_schema(result.notification),
        delivery=_delivery_to_schema(result),
    )


@router.put("", response_model=MarkedCountResponse)
async def mark_all_read_route(
    current_user: User = Depends(get_current_active_user),
    store: NotificationStore = Depends(get_notification_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> MarkedCountResponse:
    """Mark every unread notification of the authenticated user as read."""

    try:
        marked = await mark_all_notifications_read(store, broadcaster, current_user.id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return MarkedCountResponse(
        data=MarkedCountRead(marked_count=marked),
        message="All notifications marked as read",
    )


@router.get("/preferences", response_model=NotificationPreferencesResponse)
async def get_preferences_route(
    current_user: User = Depends(get_current_active_user),
    resolver: PreferenceResolver = Depends(get_preference_resolver),
) -> NotificationPreferencesResponse:
    """Return the stored preferences or the defaults when none were saved."""

    try:
        preferences = await resolver.get(current_user.id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return NotificationPreferencesResponse(
        data=NotificationPreferencesRead.model_validate(preferences)
    )


@router.put("/preferences", response_model=NotificationPreferencesResponse)
async def update_preferences_route(
    payload: NotificationPreferencesUpdate,
    current_user: User = Depends(get_current_active_user),
    resolver: PreferenceResolver = Depends(get_preference_resolver),
) -> NotificationPreferencesResponse:
    """Update any subset of the authenticated user's preferences."""

    update = PreferencesUpdate.from_mapping(payload.model_dump(exclude_none=True))
    try:
        preferences = await update_preferences(resolver, current_user.id, update)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return NotificationPreferencesResponse(
        data=NotificationPreferencesRead.model_validate(preferences),
        message="Notification preferences updated",
    )


@router.put("/mark-read-by-source", response_model=MarkedCountResponse)
async def mark_read_by_source_route(
    payload: MarkReadBySourceRequest,
    current_user: User = Depends(get_current_active_user),
    reconciler: SourceReadReconciler = Depends(get_source_read_reconciler),
) -> MarkedCountResponse:
    """Mark the unread notifications referencing one source entity as read."""

    if not payload.source_field or payload.source_value in (None, ""):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                "sourceField and sourceValue are required. "
                f"{invalid_source_field_message()}"
            ),
        )
    try:
        result = await reconciler.mark_read_by_source(
            current_user.id, payload.source_field, str(payload.source_value)
        )
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return MarkedCountResponse(
        data=MarkedCountRead(marked_count=result.marked_count),
        message=result.message,
    )


@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification_route(
    notification_id: str,
    current_user: User = Depends(get_current_active_user),
    store: NotificationStore = Depends(get_notification_store),
) -> NotificationResponse:
    try:
        notification = await get_notification(store, current_user.id, notification_id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return NotificationResponse(data=_notification_to_schema(notification))


@router.put("/{notification_id}", response_model=NotificationResponse)
async def mark_notification_read_route(
    notification_id: str,
    current_user: User = Depends(get_current_active_user),
    store: NotificationStore = Depends(get_notification_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> NotificationResponse:
    try:
        notification = await mark_notification_read(
            store, broadcaster, current_user.id, notification_id
        )
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return NotificationResponse(
        data=_notification_to_schema(notification),
        message="Notification marked as read",
    )


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification_route(
    notification_id: str,
    current_user: User = Depends(get_current_active_user),
    store: NotificationStore = Depends(get_notification_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> Response:
    try:
        await delete_notification(store, broadcaster, current_user.id, notification_id)
    except NotificationError as exc:
        raise _to_http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _authenticate_websocket(token: str) -> User:
    session = SessionLocal()
    try:
        user = resolve_current_user(token, session)
    finally:
        session.close()
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return user


@router.websocket("/ws")
async def notifications_websocket(
    websocket: WebSocket,
    store: NotificationStore = Depends(get_notification_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    manager: NotificationConnectionManager = Depends(get_connection_manager),
) -> None:
    """Websocket endpoint that streams notification events to the authenticated user."""

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008)
        return

    try:
        user = _authenticate_websocket(token)
        unread_count = await store.count_unread(user.id)
        pending = await store.list_unread_for_user(user.id, limit=INIT_NOTIFICATION_LIMIT)
    except HTTPException:
        await websocket.close(code=1008)
        return
    except StoreError:
        await websocket.close(code=1011)
        return

    snapshot = {
        "type": "init",
        "data": {
            "unreadCount": unread_count,
            "notifications": [serialize_notification(n) for n in pending],
        },
    }
    try:
        await manager.connect(user.id, websocket, snapshot)
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                continue

            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            if message_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            if message_type == "ack":
                ids = message.get("ids", [])
                if isinstance(ids, list) and ids:
                    try:
                        await acknowledge_notifications(store, broadcaster, user.id, ids)
                    except StoreError:
                        logger.warning("Failed to acknowledge notifications for user %s", user.id)
                continue
    except WebSocketDisconnect:
        manager.disconnect(user.id, websocket)
    except Exception:  # pragma: no cover
        manager.disconnect(user.id, websocket)
        raise
