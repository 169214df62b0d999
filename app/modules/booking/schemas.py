"""Booking schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import (
    BookingStatusEnum,
    DepositStatusEnum,
    DisputeResolutionEnum,
    DisputeStatusEnum,
    PolicySourceEnum,
    RefundReasonEnum,
)


class BookingCreateRequest(BaseModel):
    """Create booking request."""

    service_id: UUID
    booking_date: datetime
    timezone: str | None = Field(default=None, max_length=64)
    purchase_flex_pass: bool = False


class BookingCancelRequest(BaseModel):
    """Cancel booking request."""

    reason: str | None = Field(default=None, max_length=512)


class DisputeCreateRequest(BaseModel):
    """Open a dispute on a cancelled or no-show booking."""

    reason: str = Field(min_length=1, max_length=2000)


class DisputeResolveRequest(BaseModel):
    """Adjudicate a pending dispute."""

    resolution: DisputeResolutionEnum
    notes: str | None = Field(default=None, max_length=2000)


class BookingRead(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    service_id: UUID
    customer_id: UUID
    provider_id: UUID
    booking_date: datetime
    duration_minutes: int
    timezone: str
    status: BookingStatusEnum
    deposit_amount: int
    deposit_status: DepositStatusEnum
    flex_pass_purchased: bool
    flex_pass_fee: int | None
    confirmed_at: datetime | None
    completed_at: datetime | None
    cancellation_time: datetime | None
    cancellation_reason: str | None
    refund_amount: int | None
    refund_reason: RefundReasonEnum | None
    refund_explanation: str | None
    fee_charged: int | None
    dispute_status: DisputeStatusEnum
    dispute_reason: str | None
    dispute_created_at: datetime | None
    dispute_resolved_at: datetime | None
    dispute_resolution_notes: str | None
    created_at: datetime
    updated_at: datetime


class BookingCreatedRead(BaseModel):
    """New booking plus the client secret used to pay its deposit."""

    booking: BookingRead
    client_secret: str | None


class RefundQuoteRead(BaseModel):
    """Refund preview for cancelling now."""

    model_config = ConfigDict(from_attributes=True)

    refund_amount: int
    fee_charged: int
    reason: RefundReasonEnum
    explanation: str
    hours_until_booking: float
    policy_used: PolicySourceEnum


class NoShowBatchError(BaseModel):
    booking_id: UUID
    error: str


class NoShowBatchRead(BaseModel):
    """Outcome of one no-show sweep."""

    total_found: int
    total_processed: int
    total_failed: int
    errors: list[NoShowBatchError]


class NoShowStatsRead(BaseModel):
    total_no_shows: int
    total_fees_charged: int
    average_fee: float
