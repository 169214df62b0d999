"""Outbox consumer that materializes booking events into notifications."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from app.core.enums import BookingStatusEnum, NotificationEventEnum, NotificationStatusEnum
from app.modules.audit.models import OutboxEvent
from app.modules.audit.repository import AuditRepository
from app.modules.booking.repository import BookingRepository
from app.modules.notifications.repository import NotificationsRepository
from app.shared.utils import format_cents, utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class NotificationMessage:
    user_id: UUID
    title: str
    body: str
    channel: str = "email"


class NotificationsOutboxWorker:
    """Process due outbox events and create per-recipient notifications."""

    def __init__(
        self,
        audit_repository: AuditRepository,
        notifications_repository: NotificationsRepository,
        booking_repository: BookingRepository,
        *,
        currency: str = "AUD",
        batch_size: int = 100,
        max_retries: int = 5,
        base_backoff_seconds: int = 30,
        max_backoff_seconds: int = 300,
        now_provider=utc_now,
    ) -> None:
        self.audit_repository = audit_repository
        self.notifications_repository = notifications_repository
        self.booking_repository = booking_repository
        self.currency = currency
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.base_backoff_seconds = base_backoff_seconds
        self.max_backoff_seconds = max_backoff_seconds
        self.now_provider = now_provider

    async def run_once(self) -> dict[str, int]:
        """Run one processing cycle."""
        stats = {"requeued": 0, "processed": 0, "failed": 0, "dispatched": 0, "dropped": 0}
        stats["requeued"] = await self._requeue_retryable_failed_events()

        events = await self.audit_repository.list_pending_outbox(limit=self.batch_size, now=self.now_provider())
        for event in events:
            try:
                messages = await self._build_messages(event)
                if messages is None:
                    stats["dropped"] += 1
                    messages = []
                booking_id = self._optional_uuid(event.payload or {}, "booking_id")
                for message in messages:
                    notification = await self.notifications_repository.create_notification(
                        user_id=message.user_id,
                        booking_id=booking_id,
                        event_type=event.event_type,
                        channel=message.channel,
                        title=message.title,
                        body=message.body,
                    )
                    await self.notifications_repository.set_status(
                        notification,
                        NotificationStatusEnum.SENT,
                        self.now_provider(),
                    )
                    stats["dispatched"] += 1

                await self.audit_repository.mark_outbox_processed(event, self.now_provider())
                stats["processed"] += 1
            except Exception as exc:
                logger.warning("Outbox event %s (%s) failed: %s", event.id, event.event_type, exc)
                await self.audit_repository.mark_outbox_failed(event, str(exc))
                stats["failed"] += 1
        return stats

    async def _requeue_retryable_failed_events(self) -> int:
        now = self.now_provider()
        failed_events = await self.audit_repository.list_failed_outbox(
            limit=self.batch_size,
            max_retries=self.max_retries,
        )
        requeued = 0
        for event in failed_events:
            if self._is_backoff_elapsed(event, now):
                await self.audit_repository.mark_outbox_pending(event)
                requeued += 1
        return requeued

    def _is_backoff_elapsed(self, event: OutboxEvent, now: datetime) -> bool:
        retries = max(event.retries, 1)
        backoff_seconds = min(
            self.max_backoff_seconds,
            self.base_backoff_seconds * (2 ** (retries - 1)),
        )
        last_attempt_at = event.updated_at or event.occurred_at
        return now >= last_attempt_at + timedelta(seconds=backoff_seconds)

    def _money(self, payload: dict, key: str) -> str:
        return format_cents(int(payload.get(key) or 0), self.currency)

    async def _build_messages(self, event: OutboxEvent) -> list[NotificationMessage] | None:
        """Messages for ``event``; None when the event is stale and should be dropped."""
        payload = event.payload or {}
        event_type = event.event_type
        service_name = payload.get("service_name") or "your booking"
        booking_date = payload.get("booking_date", "unknown time")

        if event_type == NotificationEventEnum.BOOKING_REMINDER:
            booking_id = self._required_uuid(payload, "booking_id")
            status = await self.booking_repository.get_status(booking_id)
            if status != BookingStatusEnum.CONFIRMED:
                logger.info("Dropping reminder for booking %s in status %s", booking_id, status)
                return None
            return [
                NotificationMessage(
                    user_id=self._required_uuid(payload, "customer_id"),
                    title="Upcoming booking reminder",
                    body=f"Reminder: {service_name} is booked for {booking_date}.",
                ),
            ]

        if event_type == NotificationEventEnum.BOOKING_CREATED:
            return [
                NotificationMessage(
                    user_id=self._required_uuid(payload, "customer_id"),
                    title="Booking received",
                    body=(
                        f"Your booking for {service_name} on {booking_date} is awaiting a deposit of "
                        f"{self._money(payload, 'deposit_amount')}."
                    ),
                ),
            ]

        if event_type == NotificationEventEnum.BOOKING_CONFIRMED:
            return [
                NotificationMessage(
                    user_id=self._required_uuid(payload, "customer_id"),
                    title="Booking confirmed",
                    body=f"Your booking for {service_name} on {booking_date} has been confirmed.",
                ),
                NotificationMessage(
                    user_id=self._required_uuid(payload, "provider_id"),
                    title="New confirmed booking",
                    body=f"{payload.get('customer_name') or 'A customer'} booked {service_name} on {booking_date}.",
                ),
            ]

        if event_type == NotificationEventEnum.BOOKING_PAYMENT_FAILED:
            return [
                NotificationMessage(
                    user_id=self._required_uuid(payload, "customer_id"),
                    title="Deposit payment failed",
                    body=f"We could not take the deposit for {service_name}; the booking was cancelled.",
                ),
            ]

        if event_type == NotificationEventEnum.BOOKING_CANCELLED:
            refund = self._money(payload, "refund_amount")
            return [
                NotificationMessage(
                    user_id=self._required_uuid(payload, "customer_id"),
                    title="Booking cancelled",
                    body=f"Your booking for {service_name} was cancelled. Refund: {refund}. {payload.get('explanation', '')}".strip(),
                ),
                NotificationMessage(
                    user_id=self._required_uuid(payload, "provider_id"),
                    title="Booking cancelled",
                    body=f"The booking for {service_name} on {booking_date} was cancelled.",
                ),
            ]

        if event_type == NotificationEventEnum.BOOKING_COMPLETED:
            return [
                NotificationMessage(
                    user_id=self._required_uuid(payload, "customer_id"),
                    title="Booking completed",
                    body=f"Thanks for attending {service_name}.",
                ),
            ]

        if event_type == NotificationEventEnum.BOOKING_NO_SHOW:
            fee = self._money(payload, "fee_charged")
            return [
                NotificationMessage(
                    user_id=user_id,
                    title="Booking marked as no-show",
                    body=f"The booking for {service_name} on {booking_date} was marked as a no-show. Fee: {fee}.",
                )
                for user_id in self._unique_recipients(
                    self._optional_uuid(payload, "customer_id"),
                    self._optional_uuid(payload, "provider_id"),
                )
            ]

        if event_type in (NotificationEventEnum.DISPUTE_CREATED, NotificationEventEnum.DISPUTE_RESOLVED):
            if event_type == NotificationEventEnum.DISPUTE_CREATED:
                title = "Dispute opened"
                body = f"A dispute was opened for {service_name}: {payload.get('dispute_reason', '')}".strip()
            else:
                title = "Dispute resolved"
                body = (
                    f"The dispute for {service_name} was resolved in favour of the "
                    f"{payload.get('resolution', 'unknown')}. Refund: {self._money(payload, 'refund_amount')}."
                )
            return [
                NotificationMessage(user_id=user_id, title=title, body=body)
                for user_id in self._unique_recipients(
                    self._optional_uuid(payload, "customer_id"),
                    self._optional_uuid(payload, "provider_id"),
                )
            ]

        return []

    @staticmethod
    def _required_uuid(payload: dict, key: str) -> UUID:
        value = payload.get(key)
        if value is None:
            raise ValueError(f"Missing required key: {key}")
        return UUID(str(value))

    @staticmethod
    def _optional_uuid(payload: dict, key: str) -> UUID | None:
        value = payload.get(key)
        if value is None:
            return None
        return UUID(str(value))

    @staticmethod
    def _unique_recipients(*recipients: UUID | None) -> list[UUID]:
        unique: list[UUID] = []
        seen: set[UUID] = set()
        for recipient in recipients:
            if recipient is not None and recipient not in seen:
                unique.append(recipient)
                seen.add(recipient)
        return unique
