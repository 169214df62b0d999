"""Notification request publishing."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import NotificationEventEnum
from app.modules.audit.repository import AuditRepository


class NotificationDispatcher(Protocol):
    """Fire-and-forget sink for booking events."""

    async def publish(
        self,
        event: NotificationEventEnum,
        payload: dict[str, Any],
        *,
        available_at: datetime | None = None,
    ) -> None:
        ...


class OutboxNotificationDispatcher:
    """Records notification requests as outbox events in the caller's transaction.

    Each write runs inside a SAVEPOINT so a failed insert is rolled back on its
    own and the surrounding booking update can still commit.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.audit_repository = AuditRepository(session)

    async def publish(
        self,
        event: NotificationEventEnum,
        payload: dict[str, Any],
        *,
        available_at: datetime | None = None,
    ) -> None:
        async with self.session.begin_nested():
            await self.audit_repository.create_outbox_event(
                aggregate_type=event.split(".", 1)[0],
                aggregate_id=str(payload.get("booking_id", "")),
                event_type=str(event),
                payload=payload,
                available_at=available_at,
            )
