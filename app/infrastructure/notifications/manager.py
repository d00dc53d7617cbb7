"""Registry of the notification websockets each user has open."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import anyio
from fastapi import WebSocket

from app.utils import utc_now

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class RealtimeSession:
    """One open socket of a user."""

    user_id: str
    websocket: WebSocket
    opened_at: datetime = field(default_factory=utc_now)
    events_sent: int = 0


class NotificationConnectionManager:
    """Track open notification sockets per user and fan events out to them.

    A socket only starts receiving live events once its initial snapshot has
    been sent, so the client never sees an update older than its snapshot
    arrive after it.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, list[RealtimeSession]] = {}

    async def connect(
        self, user_id: str, websocket: WebSocket, snapshot: dict[str, Any] | None = None
    ) -> RealtimeSession:
        """Accept ``websocket``, send ``snapshot`` and start routing events to it."""

        await websocket.accept()
        session = RealtimeSession(user_id=user_id, websocket=websocket)
        if snapshot is not None:
            await websocket.send_json(snapshot)
            session.events_sent += 1
        self._sessions.setdefault(user_id, []).append(session)
        logger.info(
            "Realtime session opened for user %s (%s open)", user_id, len(self._sessions[user_id])
        )
        return session

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        sessions = self._sessions.get(user_id)
        if not sessions:
            return
        remaining = [session for session in sessions if session.websocket is not websocket]
        if remaining:
            self._sessions[user_id] = remaining
        else:
            del self._sessions[user_id]
        if len(remaining) < len(sessions):
            logger.info("Realtime session closed for user %s (%s open)", user_id, len(remaining))

    def is_connected(self, user_id: str) -> bool:
        return bool(self._sessions.get(user_id))

    def sessions_for(self, user_id: str) -> list[RealtimeSession]:
        return list(self._sessions.get(user_id, ()))

    async def send_to_user(self, user_id: str, message: dict[str, Any]) -> int:
        """Send ``message`` to all of ``user_id``'s sockets at once.

        Sockets that fail are dropped. Returns how many sockets received it.
        """

        sessions = self.sessions_for(user_id)
        if not sessions:
            return 0

        stale: list[RealtimeSession] = []

        async def send(session: RealtimeSession) -> None:
            try:
                await session.websocket.send_json(message)
            except Exception:
                logger.debug("Dropping stale socket for user %s", user_id, exc_info=True)
                stale.append(session)
            else:
                session.events_sent += 1

        async with anyio.create_task_group() as task_group:
            for session in sessions:
                task_group.start_soon(send, session)

        for session in stale:
            self.disconnect(user_id, session.websocket)
        return len(sessions) - len(stale)


notification_manager = NotificationConnectionManager()


__all__ = ["NotificationConnectionManager", "RealtimeSession", "notification_manager"]
