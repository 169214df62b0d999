"""Periodic detection of confirmed bookings whose customer never showed up."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import session_scope
from app.core.metrics import NO_SHOW_BATCH_BOOKINGS_TOTAL
from app.modules.booking.repository import BookingRepository
from app.modules.booking.service import build_booking_service
from app.modules.payments.gateway import PaymentGateway, StripePaymentGateway
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)


class NoShowDetector:
    """Mark overdue confirmed bookings as no-shows.

    Every booking is handled in its own session so one failure never rolls
    back the others. Work is spread over at most ``max_concurrency`` tasks.
    """

    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]],
        service_factory: Callable[[AsyncSession], Any],
        *,
        grace_period_hours: int = 2,
        max_concurrency: int = 5,
        batch_limit: int = 500,
        repository_factory: Callable[[AsyncSession], BookingRepository] = BookingRepository,
    ) -> None:
        self.session_factory = session_factory
        self.service_factory = service_factory
        self.grace_period = timedelta(hours=grace_period_hours)
        self.max_concurrency = max_concurrency
        self.batch_limit = batch_limit
        self.repository_factory = repository_factory

    async def find_overdue(self, now: datetime) -> list[UUID]:
        """Ids of all confirmed bookings that started before ``now - grace period``.

        The scan reads ``batch_limit`` rows per page until the set is exhausted.
        """
        cutoff = now - self.grace_period
        booking_ids: list[UUID] = []
        after: tuple[datetime, UUID] | None = None
        while True:
            async with self.session_factory() as session:
                page = await self.repository_factory(session).find_overdue_confirmed(
                    cutoff,
                    self.batch_limit,
                    after,
                )
            booking_ids.extend(booking.id for booking in page)
            if len(page) < self.batch_limit:
                return booking_ids
            after = (page[-1].booking_date, page[-1].id)

    async def _process_one(self, booking_id: UUID, semaphore: asyncio.Semaphore) -> str | None:
        async with semaphore:
            try:
                async with self.session_factory() as session:
                    await self.service_factory(session).mark_no_show(booking_id)
            except Exception as exc:
                NO_SHOW_BATCH_BOOKINGS_TOTAL.labels(outcome="failed").inc()
                logger.error("Failed to mark booking %s as no-show: %s", booking_id, exc)
                return str(exc) or exc.__class__.__name__
        NO_SHOW_BATCH_BOOKINGS_TOTAL.labels(outcome="processed").inc()
        return None

    async def process_batch(self, now: datetime | None = None) -> dict[str, Any]:
        """Run one sweep. Per-booking failures are reported, never raised."""
        now = now or utc_now()
        booking_ids = await self.find_overdue(now)
        if not booking_ids:
            return {"total_found": 0, "total_processed": 0, "total_failed": 0, "errors": []}

        semaphore = asyncio.Semaphore(self.max_concurrency)
        outcomes = await asyncio.gather(
            *(self._process_one(booking_id, semaphore) for booking_id in booking_ids),
        )

        errors = [
            {"booking_id": booking_id, "error": error}
            for booking_id, error in zip(booking_ids, outcomes)
            if error is not None
        ]
        result = {
            "total_found": len(booking_ids),
            "total_processed": len(booking_ids) - len(errors),
            "total_failed": len(errors),
            "errors": errors,
        }
        logger.info(
            "No-show sweep: %s found, %s processed, %s failed",
            result["total_found"],
            result["total_processed"],
            result["total_failed"],
        )
        return result


def build_no_show_detector(payment_gateway: PaymentGateway | None = None) -> NoShowDetector:
    """Detector wired to real sessions and booking services."""
    settings = get_settings()
    gateway = payment_gateway or StripePaymentGateway()
    return NoShowDetector(
        session_scope,
        lambda session: build_booking_service(session, gateway),
        grace_period_hours=settings.no_show_grace_period_hours,
        max_concurrency=settings.no_show_max_concurrency,
        batch_limit=settings.no_show_batch_limit,
    )
