"""Booking ORM models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin
from app.core.enums import BookingStatusEnum, DepositStatusEnum, DisputeStatusEnum, RefundReasonEnum

if TYPE_CHECKING:
    from app.modules.identity.models import User
    from app.modules.services.models import Service


class Booking(BaseModelMixin, Base):
    """Customer booking of a provider service, with its frozen policy terms."""

    __tablename__ = "bookings"

    service_id: Mapped[UUID] = mapped_column(ForeignKey("services.id", ondelete="RESTRICT"), nullable=False, index=True)
    customer_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)

    booking_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC", nullable=False)

    status: Mapped[BookingStatusEnum] = mapped_column(
        SAEnum(BookingStatusEnum, name="booking_status_enum", native_enum=False),
        default=BookingStatusEnum.PENDING,
        nullable=False,
        index=True,
    )
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    no_show_marked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    deposit_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    deposit_status: Mapped[DepositStatusEnum] = mapped_column(
        SAEnum(DepositStatusEnum, name="deposit_status_enum", native_enum=False),
        default=DepositStatusEnum.PENDING,
        nullable=False,
    )
    payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    charge_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    flex_pass_purchased: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    flex_pass_fee: Mapped[int | None] = mapped_column(Integer, nullable=True)

    cancellation_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    refund_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)
    refund_reason: Mapped[RefundReasonEnum | None] = mapped_column(
        SAEnum(RefundReasonEnum, name="refund_reason_enum", native_enum=False),
        nullable=True,
    )
    refund_explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    refund_receipt_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    fee_charged: Mapped[int | None] = mapped_column(Integer, nullable=True)

    dispute_status: Mapped[DisputeStatusEnum] = mapped_column(
        SAEnum(DisputeStatusEnum, name="dispute_status_enum", native_enum=False),
        default=DisputeStatusEnum.NONE,
        nullable=False,
        index=True,
    )
    dispute_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    dispute_created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    dispute_resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    dispute_resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    dispute_resolved_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    policy_snapshot: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    service: Mapped["Service"] = relationship(back_populates="bookings")
    customer: Mapped["User"] = relationship(foreign_keys=[customer_id])
    provider: Mapped["User"] = relationship(foreign_keys=[provider_id])
