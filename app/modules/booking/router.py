"""Booking API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.enums import RoleEnum
from app.modules.booking.no_show import NoShowDetector, build_no_show_detector
from app.modules.booking.schemas import (
    BookingCancelRequest,
    BookingCreatedRead,
    BookingCreateRequest,
    BookingRead,
    DisputeCreateRequest,
    DisputeResolveRequest,
    NoShowBatchRead,
    NoShowStatsRead,
    RefundQuoteRead,
)
from app.modules.booking.service import BookingService, get_booking_service
from app.modules.identity.service import get_current_user, require_roles
from app.modules.payments.gateway import get_payment_gateway
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/bookings", tags=["bookings"])


def get_no_show_detector(payment_gateway=Depends(get_payment_gateway)) -> NoShowDetector:
    """Dependency provider for the no-show detector."""
    return build_no_show_detector(payment_gateway)


@router.post("", response_model=BookingCreatedRead, status_code=201)
async def create_booking(
    payload: BookingCreateRequest,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingCreatedRead:
    """Create a pending booking and its deposit payment intent."""
    booking, client_secret = await service.create_booking(payload, current_user)
    return BookingCreatedRead(booking=BookingRead.model_validate(booking), client_secret=client_secret)


@router.get("/my", response_model=Page[BookingRead])
async def list_my_bookings(
    pagination=Depends(get_pagination_params),
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> Page[BookingRead]:
    """List bookings for current user."""
    items, total = await service.list_bookings(current_user, pagination.limit, pagination.offset)
    serialized = [BookingRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/no-shows/stats", response_model=NoShowStatsRead)
async def no_show_stats(
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> NoShowStatsRead:
    """No-show totals for the current provider (or everyone, for admins)."""
    return NoShowStatsRead(**await service.get_no_show_stats(current_user))


@router.post("/no-shows/process", response_model=NoShowBatchRead)
async def process_no_shows(
    detector: NoShowDetector = Depends(get_no_show_detector),
    _admin=Depends(require_roles(RoleEnum.ADMIN)),
) -> NoShowBatchRead:
    """Run the no-show sweep now (admin task endpoint)."""
    return NoShowBatchRead.model_validate(await detector.process_batch())


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingRead:
    booking = await service.get_booking(booking_id, current_user)
    return BookingRead.model_validate(booking)


@router.get("/{booking_id}/refund-quote", response_model=RefundQuoteRead)
async def quote_refund(
    booking_id: UUID,
    timezone: str | None = Query(default=None, max_length=64),
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> RefundQuoteRead:
    """Preview the refund for cancelling now."""
    result = await service.quote_refund(booking_id, current_user, timezone)
    return RefundQuoteRead.model_validate(result)


@router.post("/{booking_id}/cancel", response_model=BookingRead)
async def cancel_booking(
    booking_id: UUID,
    payload: BookingCancelRequest,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingRead:
    """Cancel booking and apply the frozen refund policy."""
    booking = await service.cancel_booking(booking_id, current_user, payload.reason)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/complete", response_model=BookingRead)
async def complete_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingRead:
    booking = await service.complete_booking(booking_id, current_user)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/no-show", response_model=BookingRead)
async def mark_no_show(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(require_roles(RoleEnum.PROVIDER, RoleEnum.ADMIN)),
) -> BookingRead:
    """Mark a confirmed booking as no-show. Admins act as the system sweep."""
    marked_by = None if current_user.role.name == RoleEnum.ADMIN else current_user
    booking = await service.mark_no_show(booking_id, marked_by)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/dispute", response_model=BookingRead)
async def create_dispute(
    booking_id: UUID,
    payload: DisputeCreateRequest,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingRead:
    """Open a dispute on a cancelled or no-show booking."""
    booking = await service.create_dispute(booking_id, current_user, payload.reason)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/dispute/resolve", response_model=BookingRead)
async def resolve_dispute(
    booking_id: UUID,
    payload: DisputeResolveRequest,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(require_roles(RoleEnum.ADMIN)),
) -> BookingRead:
    """Resolve a pending dispute (admin only)."""
    booking = await service.resolve_dispute(booking_id, current_user, payload.resolution, payload.notes)
    return BookingRead.model_validate(booking)
