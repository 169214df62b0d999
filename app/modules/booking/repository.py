"""Booking repository layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Select, func, select, tuple_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.enums import BookingStatusEnum, DisputeStatusEnum, RoleEnum
from app.modules.booking.models import Booking


class BookingRepository:
    """DB operations for booking domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_booking(
        self,
        service_id: UUID,
        customer_id: UUID,
        provider_id: UUID,
        customer_email: str,
        customer_name: str,
        booking_date: datetime,
        duration_minutes: int,
        timezone: str,
        deposit_amount: int,
        flex_pass_purchased: bool,
        flex_pass_fee: int | None,
        policy_snapshot: dict[str, Any],
    ) -> Booking:
        booking = Booking(
            service_id=service_id,
            customer_id=customer_id,
            provider_id=provider_id,
            customer_email=customer_email,
            customer_name=customer_name,
            booking_date=booking_date,
            duration_minutes=duration_minutes,
            timezone=timezone,
            status=BookingStatusEnum.PENDING,
            deposit_amount=deposit_amount,
            flex_pass_purchased=flex_pass_purchased,
            flex_pass_fee=flex_pass_fee,
            dispute_status=DisputeStatusEnum.NONE,
            policy_snapshot=policy_snapshot,
        )
        self.session.add(booking)
        await self.session.flush()
        await self.session.refresh(booking, attribute_names=["service"])
        return booking

    async def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        stmt = select(Booking).options(selectinload(Booking.service)).where(Booking.id == booking_id)
        return await self.session.scalar(stmt)

    async def get_booking_by_payment_reference(self, payment_intent_id: str) -> Booking | None:
        stmt = (
            select(Booking)
            .options(selectinload(Booking.service))
            .where(Booking.payment_intent_id == payment_intent_id)
        )
        return await self.session.scalar(stmt)

    async def get_status(self, booking_id: UUID) -> BookingStatusEnum | None:
        stmt = select(Booking.status).where(Booking.id == booking_id)
        return await self.session.scalar(stmt)

    async def has_overlapping_booking(self, provider_id: UUID, start_at: datetime, end_at: datetime) -> bool:
        booking_end = Booking.booking_date + func.make_interval(0, 0, 0, 0, 0, Booking.duration_minutes)
        stmt = select(Booking.id).where(
            Booking.provider_id == provider_id,
            Booking.status.in_((BookingStatusEnum.PENDING, BookingStatusEnum.CONFIRMED)),
            Booking.booking_date < end_at,
            booking_end > start_at,
        )
        return (await self.session.scalar(stmt.limit(1))) is not None

    async def list_bookings(
        self,
        user_id: UUID,
        role_name: RoleEnum,
        limit: int,
        offset: int,
    ) -> tuple[list[Booking], int]:
        base_stmt: Select[tuple[Booking]] = select(Booking)

        if role_name == RoleEnum.CUSTOMER:
            base_stmt = base_stmt.where(Booking.customer_id == user_id)
        elif role_name == RoleEnum.PROVIDER:
            base_stmt = base_stmt.where(Booking.provider_id == user_id)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Booking.booking_date.desc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def find_overdue_confirmed(
        self,
        cutoff: datetime,
        limit: int,
        after: tuple[datetime, UUID] | None = None,
    ) -> list[Booking]:
        """One page of overdue confirmed bookings, keyset-ordered by (booking_date, id)."""
        stmt = select(Booking).where(
            Booking.status == BookingStatusEnum.CONFIRMED,
            Booking.booking_date < cutoff,
        )
        if after is not None:
            stmt = stmt.where(tuple_(Booking.booking_date, Booking.id) > tuple_(*after))
        stmt = stmt.order_by(Booking.booking_date.asc(), Booking.id.asc()).limit(limit)
        return (await self.session.scalars(stmt)).all()

    async def no_show_stats(self, provider_id: UUID | None = None) -> tuple[int, int]:
        stmt = select(func.count(), func.coalesce(func.sum(Booking.fee_charged), 0)).where(
            Booking.status == BookingStatusEnum.NO_SHOW,
        )
        if provider_id is not None:
            stmt = stmt.where(Booking.provider_id == provider_id)
        count, total_fees = (await self.session.execute(stmt)).one()
        return int(count), int(total_fees)

    async def save(self, booking: Booking) -> Booking:
        await self.session.flush()
        return booking

    async def update_if(
        self,
        booking_id: UUID,
        expected_status: BookingStatusEnum,
        expected_dispute_status: DisputeStatusEnum | None = None,
        **values: Any,
    ) -> Booking | None:
        """Apply ``values`` only while the row still has the expected status.

        Returns the refreshed booking, or None when another writer got there first.
        """
        stmt = update(Booking).where(Booking.id == booking_id, Booking.status == expected_status)
        if expected_dispute_status is not None:
            stmt = stmt.where(Booking.dispute_status == expected_dispute_status)
        stmt = stmt.values(**values).returning(Booking)
        return await self.session.scalar(stmt)
