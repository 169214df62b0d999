"""Booking business logic layer."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.core.enums import (
    BookingStatusEnum,
    DepositStatusEnum,
    DepositTypeEnum,
    DisputeResolutionEnum,
    DisputeStatusEnum,
    NotificationEventEnum,
    RefundReasonEnum,
    RoleEnum,
)
from app.core.metrics import (
    BOOKING_TRANSITIONS_TOTAL,
    NOTIFICATION_PUBLISH_FAILURES_TOTAL,
    PAYMENT_GATEWAY_FAILURES_TOTAL,
    REFUND_DECISIONS_TOTAL,
)
from app.modules.audit.repository import AuditRepository
from app.modules.booking.models import Booking
from app.modules.booking.repository import BookingRepository
from app.modules.booking.schemas import BookingCreateRequest
from app.modules.booking.state_machine import ensure_dispute_refund, ensure_transition
from app.modules.identity.models import User
from app.modules.notifications.dispatcher import NotificationDispatcher, OutboxNotificationDispatcher
from app.modules.payments.gateway import PaymentGateway, get_payment_gateway, payment_idempotency_key
from app.modules.policy.refund_calculator import (
    RefundResult,
    RefundRuleHook,
    calculate_no_show_fee,
    calculate_refund,
    clamp_refund_amount,
)
from app.modules.policy.snapshot import PolicySnapshot, create_policy_snapshot, load_policy_snapshot
from app.modules.services.repository import ServicesRepository
from app.shared.exceptions import (
    ConflictException,
    DependencyFailureException,
    DisputeAlreadyPendingException,
    DisputeAlreadyResolvedException,
    ForbiddenException,
    InvalidInputException,
    InvalidTransitionException,
    NotFoundException,
)
from app.shared.utils import ensure_utc, format_cents, resolve_timezone, utc_now

logger = logging.getLogger(__name__)
settings = get_settings()

DISPUTABLE_STATUSES = (BookingStatusEnum.CANCELLED, BookingStatusEnum.NO_SHOW)


def calculate_deposit_amount(policy: PolicySnapshot) -> int:
    """Deposit in cents: a fixed amount, or a percentage of the full price."""
    if policy.deposit_type == DepositTypeEnum.PERCENTAGE:
        if policy.full_price is None:
            raise InvalidInputException("Percentage deposits require a full price")
        amount = (Decimal(policy.full_price) * Decimal(policy.deposit_amount) / Decimal(100)).quantize(
            Decimal(1),
            rounding=ROUND_HALF_UP,
        )
        return int(amount)
    return policy.deposit_amount


class BookingService:
    """Booking lifecycle: creation, payment outcome, cancellation, no-show and disputes."""

    def __init__(
        self,
        booking_repository: BookingRepository,
        services_repository: ServicesRepository,
        audit_repository: AuditRepository,
        payment_gateway: PaymentGateway,
        notifier: NotificationDispatcher,
        *,
        rule_hook: RefundRuleHook | None = None,
    ) -> None:
        self.booking_repository = booking_repository
        self.services_repository = services_repository
        self.audit_repository = audit_repository
        self.payment_gateway = payment_gateway
        self.notifier = notifier
        self.rule_hook = rule_hook

    async def _get_booking(self, booking_id: UUID) -> Booking:
        booking = await self.booking_repository.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found")
        return booking

    def _validate_actor_access(self, booking: Booking, actor: User) -> None:
        if actor.role.name == RoleEnum.ADMIN:
            return
        if actor.role.name == RoleEnum.CUSTOMER and booking.customer_id == actor.id:
            return
        if actor.role.name == RoleEnum.PROVIDER and booking.service.provider_id == actor.id:
            return
        raise ForbiddenException("You cannot manage this booking")

    async def _apply_transition(
        self,
        booking: Booking,
        requested: BookingStatusEnum,
        expected_dispute_status: DisputeStatusEnum | None = None,
        **values: Any,
    ) -> Booking:
        """Persist ``values`` guarded by the status the booking was read with."""
        current = booking.status
        updated = await self.booking_repository.update_if(
            booking.id,
            current,
            expected_dispute_status,
            **values,
        )
        if updated is None:
            latest = await self.booking_repository.get_status(booking.id)
            raise InvalidTransitionException(
                f"Booking {booking.id} was modified concurrently (now {latest}); "
                f"cannot move it to {requested}",
                current=str(latest) if latest is not None else None,
                requested=str(requested),
            )
        if updated.status != current:
            BOOKING_TRANSITIONS_TOTAL.labels(from_status=str(current), to_status=str(updated.status)).inc()
        return updated

    def _calculate(self, booking: Booking, now: datetime, timezone: str) -> RefundResult:
        result = calculate_refund(
            booking,
            now,
            timezone,
            currency=settings.currency,
            rule_hook=self.rule_hook,
        )
        REFUND_DECISIONS_TOTAL.labels(reason=str(result.reason)).inc()
        return result

    def _event_payload(self, booking: Booking, **extra: Any) -> dict[str, Any]:
        service = booking.service
        return {
            "booking_id": str(booking.id),
            "customer_id": str(booking.customer_id),
            "provider_id": str(booking.provider_id),
            "customer_email": booking.customer_email,
            "customer_name": booking.customer_name,
            "service_name": service.name if service is not None else None,
            "booking_date": ensure_utc(booking.booking_date).isoformat(),
            "duration_minutes": booking.duration_minutes,
            "deposit_amount": booking.deposit_amount,
            "status": str(booking.status),
            **extra,
        }

    async def _notify(
        self,
        event: NotificationEventEnum,
        payload: dict[str, Any],
        *,
        available_at: datetime | None = None,
    ) -> None:
        try:
            await self.notifier.publish(event, payload, available_at=available_at)
        except Exception:
            NOTIFICATION_PUBLISH_FAILURES_TOTAL.labels(event_type=str(event)).inc()
            logger.exception("Failed to publish %s for booking %s", event, payload.get("booking_id"))

    async def create_booking(self, payload: BookingCreateRequest, actor: User) -> tuple[Booking, str | None]:
        """Create a pending booking with its frozen policy and a deposit payment intent."""
        if actor.role.name != RoleEnum.CUSTOMER:
            raise ForbiddenException("Only customers can create bookings")

        service = await self.services_repository.get_service_by_id(payload.service_id)
        if service is None or not service.is_active:
            raise NotFoundException("Service not found")

        now = utc_now()
        booking_date = ensure_utc(payload.booking_date)
        if booking_date <= now:
            raise InvalidInputException("Cannot book a time in the past")

        timezone = payload.timezone or actor.timezone or settings.default_timezone
        resolve_timezone(timezone)

        booking_end = booking_date + timedelta(minutes=service.duration_minutes)
        if await self.booking_repository.has_overlapping_booking(service.provider_id, booking_date, booking_end):
            raise ConflictException("This time slot is no longer available. Please select a different time.")

        policy = create_policy_snapshot(service, now=now)
        deposit_amount = calculate_deposit_amount(policy)
        if deposit_amount <= 0:
            raise InvalidInputException("Invalid deposit amount: must be greater than 0")

        flex_pass_fee = None
        if payload.purchase_flex_pass:
            if not policy.flex_pass_enabled or policy.flex_pass_price is None:
                raise InvalidInputException("Flex pass is not available for this service")
            flex_pass_fee = policy.flex_pass_price

        booking = await self.booking_repository.create_booking(
            service_id=service.id,
            customer_id=actor.id,
            provider_id=service.provider_id,
            customer_email=actor.email,
            customer_name=actor.name,
            booking_date=booking_date,
            duration_minutes=service.duration_minutes,
            timezone=timezone,
            deposit_amount=deposit_amount,
            flex_pass_purchased=payload.purchase_flex_pass,
            flex_pass_fee=flex_pass_fee,
            policy_snapshot=policy.to_json(),
        )

        amount_due = deposit_amount + (flex_pass_fee or 0)
        try:
            intent = await self.payment_gateway.create_deposit_intent(
                amount_due,
                settings.currency,
                {"booking_id": str(booking.id), "service_id": str(service.id), "customer_email": actor.email},
                idempotency_key=payment_idempotency_key("deposit", booking.id),
            )
        except Exception as exc:
            PAYMENT_GATEWAY_FAILURES_TOTAL.labels(operation="create_deposit_intent").inc()
            logger.exception("Deposit intent creation failed for booking %s", booking.id)
            raise DependencyFailureException("Failed to initialise deposit payment") from exc

        booking.payment_intent_id = intent.intent_id
        await self.booking_repository.save(booking)

        await self._notify(NotificationEventEnum.BOOKING_CREATED, self._event_payload(booking))
        return booking, intent.client_secret

    async def confirm_payment(self, payment_intent_id: str, charge_id: str | None = None) -> Booking:
        """Deposit captured: pending -> confirmed, then schedule the reminder."""
        booking = await self.booking_repository.get_booking_by_payment_reference(payment_intent_id)
        if booking is None:
            raise NotFoundException("Booking not found")
        if booking.status == BookingStatusEnum.CANCELLED and booking.deposit_status == DepositStatusEnum.PENDING:
            return await self._refund_late_capture(booking, charge_id)
        ensure_transition(booking.status, BookingStatusEnum.CONFIRMED)

        now = utc_now()
        booking = await self._apply_transition(
            booking,
            BookingStatusEnum.CONFIRMED,
            status=BookingStatusEnum.CONFIRMED,
            deposit_status=DepositStatusEnum.PAID,
            charge_id=charge_id,
            confirmed_at=now,
        )
        await self._notify(NotificationEventEnum.BOOKING_CONFIRMED, self._event_payload(booking))

        remind_at = ensure_utc(booking.booking_date) - timedelta(hours=settings.booking_reminder_offset_hours)
        if remind_at > now:
            await self._notify(
                NotificationEventEnum.BOOKING_REMINDER,
                self._event_payload(booking),
                available_at=remind_at,
            )
        return booking

    async def _refund_late_capture(self, booking: Booking, charge_id: str | None) -> Booking:
        """The customer paid after the booking was cancelled: return everything captured."""
        amount = booking.deposit_amount + (booking.flex_pass_fee or 0)
        try:
            receipt = await self.payment_gateway.refund(
                booking.payment_intent_id,
                amount,
                RefundReasonEnum.CAPTURED_AFTER_CANCELLATION,
                {"booking_id": str(booking.id), "operation": "late_capture"},
                idempotency_key=payment_idempotency_key("late-capture", booking.id),
            )
        except Exception as exc:
            PAYMENT_GATEWAY_FAILURES_TOTAL.labels(operation="late_capture_refund").inc()
            logger.exception("Refund of late deposit capture for cancelled booking %s failed", booking.id)
            raise DependencyFailureException("Failed to refund deposit captured after cancellation") from exc

        logger.warning(
            "Deposit for cancelled booking %s was captured late and refunded (%s)",
            booking.id,
            receipt.receipt_id,
        )
        return await self._apply_transition(
            booking,
            BookingStatusEnum.CANCELLED,
            deposit_status=DepositStatusEnum.REFUNDED,
            charge_id=charge_id,
            refund_amount=booking.deposit_amount,
            refund_reason=RefundReasonEnum.CAPTURED_AFTER_CANCELLATION,
            refund_explanation="Deposit was paid after the booking was cancelled and has been refunded in full",
            fee_charged=0,
            refund_receipt_id=receipt.receipt_id,
        )

    async def handle_failed_payment(self, payment_intent_id: str) -> Booking:
        """Deposit failed: pending -> cancelled with a failed deposit."""
        booking = await self.booking_repository.get_booking_by_payment_reference(payment_intent_id)
        if booking is None:
            raise NotFoundException("Booking not found")
        if booking.status != BookingStatusEnum.PENDING:
            raise InvalidTransitionException(
                f"Payment failure only applies to pending bookings (current: {booking.status})",
                current=str(booking.status),
                requested=str(BookingStatusEnum.CANCELLED),
            )

        booking = await self._apply_transition(
            booking,
            BookingStatusEnum.CANCELLED,
            status=BookingStatusEnum.CANCELLED,
            deposit_status=DepositStatusEnum.FAILED,
            cancellation_time=utc_now(),
            cancellation_reason="Deposit payment failed",
        )
        await self._notify(NotificationEventEnum.BOOKING_PAYMENT_FAILED, self._event_payload(booking))
        return booking

    async def cancel_booking(self, booking_id: UUID, actor: User, reason: str | None = None) -> Booking:
        """Cancel a booking, record the refund decision and request the refund.

        A failed refund request does not undo the cancellation; it is logged for
        manual reconciliation.
        """
        booking = await self._get_booking(booking_id)
        self._validate_actor_access(booking, actor)

        if booking.status == BookingStatusEnum.CANCELLED:
            raise InvalidTransitionException(
                "Booking is already cancelled",
                current=str(booking.status),
                requested=str(BookingStatusEnum.CANCELLED),
            )
        ensure_transition(booking.status, BookingStatusEnum.CANCELLED)
        was_pending = booking.status == BookingStatusEnum.PENDING

        now = utc_now()
        result = self._calculate(booking, now, booking.timezone or settings.default_timezone)
        refund_amount = clamp_refund_amount(result.refund_amount, booking.deposit_amount)
        if refund_amount != result.refund_amount:
            logger.warning(
                "Refund for booking %s clamped from %s to %s",
                booking.id,
                result.refund_amount,
                refund_amount,
            )

        booking = await self._apply_transition(
            booking,
            BookingStatusEnum.CANCELLED,
            status=BookingStatusEnum.CANCELLED,
            cancellation_time=now,
            cancellation_reason=reason,
            refund_amount=refund_amount,
            refund_reason=result.reason,
            refund_explanation=result.explanation,
            fee_charged=result.fee_charged,
        )

        policy = load_policy_snapshot(booking.policy_snapshot)
        auto_refund = policy is not None and policy.auto_refund_on_cancel
        if (
            refund_amount > 0
            and auto_refund
            and booking.deposit_status == DepositStatusEnum.PAID
            and booking.payment_intent_id
        ):
            try:
                receipt = await self.payment_gateway.refund(
                    booking.payment_intent_id,
                    refund_amount,
                    result.reason,
                    {"booking_id": str(booking.id), "operation": "cancel"},
                    idempotency_key=payment_idempotency_key("cancel", booking.id),
                )
            except Exception:
                PAYMENT_GATEWAY_FAILURES_TOTAL.labels(operation="cancel_refund").inc()
                logger.exception(
                    "Refund of %s for cancelled booking %s failed; manual reconciliation required",
                    refund_amount,
                    booking.id,
                )
            else:
                booking = await self._apply_transition(
                    booking,
                    BookingStatusEnum.CANCELLED,
                    deposit_status=DepositStatusEnum.REFUNDED,
                    refund_receipt_id=receipt.receipt_id,
                )

        if was_pending and booking.deposit_status == DepositStatusEnum.PENDING and booking.payment_intent_id:
            try:
                await self.payment_gateway.cancel_deposit_intent(
                    booking.payment_intent_id,
                    idempotency_key=payment_idempotency_key("void", booking.id),
                )
            except Exception:
                PAYMENT_GATEWAY_FAILURES_TOTAL.labels(operation="void_deposit").inc()
                logger.exception(
                    "Voiding deposit intent for cancelled booking %s failed; a late capture will be refunded",
                    booking.id,
                )

        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action="booking.cancelled",
            entity_type="booking",
            entity_id=str(booking.id),
            payload={
                "refund_amount": refund_amount,
                "fee_charged": result.fee_charged,
                "refund_reason": str(result.reason),
            },
        )
        await self._notify(
            NotificationEventEnum.BOOKING_CANCELLED,
            self._event_payload(
                booking,
                refund_amount=refund_amount,
                fee_charged=result.fee_charged,
                refund_reason=str(result.reason),
                explanation=result.explanation,
                refund_display=format_cents(refund_amount, settings.currency),
            ),
        )
        return booking

    async def complete_booking(self, booking_id: UUID, actor: User) -> Booking:
        """Mark a confirmed booking as delivered."""
        booking = await self._get_booking(booking_id)
        if actor.role.name == RoleEnum.CUSTOMER:
            raise ForbiddenException("Only the provider or an admin can complete bookings")
        self._validate_actor_access(booking, actor)
        ensure_transition(booking.status, BookingStatusEnum.COMPLETED)

        booking = await self._apply_transition(
            booking,
            BookingStatusEnum.COMPLETED,
            status=BookingStatusEnum.COMPLETED,
            completed_at=utc_now(),
        )
        await self._notify(NotificationEventEnum.BOOKING_COMPLETED, self._event_payload(booking))
        return booking

    async def mark_no_show(self, booking_id: UUID, marked_by: User | None = None) -> Booking:
        """Charge the no-show fee on a confirmed booking.

        ``marked_by`` is None for the automatic sweep; otherwise it must be the
        provider who owns the booked service.
        """
        booking = await self._get_booking(booking_id)
        ensure_transition(booking.status, BookingStatusEnum.NO_SHOW)

        if marked_by is not None and booking.service.provider_id != marked_by.id:
            raise ForbiddenException(
                f"User {marked_by.id} does not have permission to mark booking {booking_id} as no-show",
            )

        fee = calculate_no_show_fee(booking)
        if marked_by is not None:
            reason = "Marked as no-show by provider"
        else:
            reason = f"Automatically detected no-show ({settings.no_show_grace_period_hours}h grace period exceeded)"

        now = utc_now()
        booking = await self._apply_transition(
            booking,
            BookingStatusEnum.NO_SHOW,
            status=BookingStatusEnum.NO_SHOW,
            no_show_marked_at=now,
            cancellation_time=now,
            cancellation_reason=reason,
            fee_charged=fee,
            refund_amount=0,
            refund_reason=RefundReasonEnum.NO_SHOW,
            refund_explanation=f"No-show fee: {format_cents(fee, settings.currency)}",
        )
        logger.info("Booking %s marked as no-show, fee %s", booking.id, fee)

        await self._notify(
            NotificationEventEnum.BOOKING_NO_SHOW,
            self._event_payload(booking, fee_charged=fee, refund_amount=0),
        )
        return booking

    async def quote_refund(self, booking_id: UUID, actor: User, timezone: str | None = None) -> RefundResult:
        """Preview what cancelling now would refund. Nothing is written."""
        booking = await self._get_booking(booking_id)
        self._validate_actor_access(booking, actor)
        return self._calculate(booking, utc_now(), timezone or booking.timezone or settings.default_timezone)

    async def create_dispute(self, booking_id: UUID, actor: User, reason: str) -> Booking:
        """Open a dispute on a cancelled or no-show booking."""
        booking = await self._get_booking(booking_id)
        if actor.role.name != RoleEnum.ADMIN and booking.customer_id != actor.id:
            raise ForbiddenException("Only the booking's customer can open a dispute")

        reason = (reason or "").strip()
        if not reason:
            raise InvalidInputException("Dispute reason is required")

        if booking.dispute_status == DisputeStatusEnum.PENDING:
            raise DisputeAlreadyPendingException(
                "This booking already has a pending dispute",
                current=str(booking.dispute_status),
                requested=str(DisputeStatusEnum.PENDING),
            )
        if booking.dispute_status != DisputeStatusEnum.NONE:
            raise DisputeAlreadyResolvedException(
                "This booking's dispute has already been resolved",
                current=str(booking.dispute_status),
                requested=str(DisputeStatusEnum.PENDING),
            )
        if booking.status not in DISPUTABLE_STATUSES:
            raise InvalidTransitionException(
                f"Only cancelled or no-show bookings can be disputed (current: {booking.status})",
                current=str(booking.status),
                requested=str(DisputeStatusEnum.PENDING),
            )

        booking = await self._apply_transition(
            booking,
            booking.status,
            DisputeStatusEnum.NONE,
            dispute_status=DisputeStatusEnum.PENDING,
            dispute_reason=reason,
            dispute_created_at=utc_now(),
        )
        await self._notify(
            NotificationEventEnum.DISPUTE_CREATED,
            self._event_payload(booking, dispute_reason=reason),
        )
        return booking

    async def resolve_dispute(
        self,
        booking_id: UUID,
        actor: User,
        resolution: DisputeResolutionEnum,
        notes: str | None = None,
    ) -> Booking:
        """Settle a pending dispute.

        A customer win refunds whatever part of the deposit has not been returned
        yet. The resolution is only recorded once that refund has succeeded.
        """
        if actor.role.name != RoleEnum.ADMIN:
            raise ForbiddenException("Only admins can resolve disputes")

        booking = await self._get_booking(booking_id)
        if booking.dispute_status != DisputeStatusEnum.PENDING:
            raise InvalidTransitionException(
                "No pending dispute found for this booking",
                current=str(booking.dispute_status),
                requested=str(resolution),
            )

        now = utc_now()
        if resolution == DisputeResolutionEnum.PROVIDER:
            booking = await self._apply_transition(
                booking,
                booking.status,
                DisputeStatusEnum.PENDING,
                dispute_status=DisputeStatusEnum.RESOLVED_PROVIDER,
                dispute_resolved_at=now,
                dispute_resolution_notes=notes,
                dispute_resolved_by=actor.id,
            )
            refunded_now = 0
        else:
            booking, refunded_now = await self._resolve_for_customer(booking, actor, notes, now)

        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action="booking.dispute.resolved",
            entity_type="booking",
            entity_id=str(booking.id),
            payload={"resolution": str(resolution), "refund_amount": refunded_now, "notes": notes},
        )
        await self._notify(
            NotificationEventEnum.DISPUTE_RESOLVED,
            self._event_payload(
                booking,
                resolution=str(resolution),
                refund_amount=refunded_now,
                notes=notes,
            ),
        )
        return booking

    async def _resolve_for_customer(
        self,
        booking: Booking,
        actor: User,
        notes: str | None,
        now: datetime,
    ) -> tuple[Booking, int]:
        captured = booking.deposit_status in (DepositStatusEnum.PAID, DepositStatusEnum.REFUNDED)
        already_refunded = (booking.refund_amount or 0) if booking.refund_receipt_id else 0
        outstanding = 0
        if captured:
            ensure_dispute_refund(booking.status)
            outstanding = clamp_refund_amount(booking.deposit_amount - already_refunded, booking.deposit_amount)

        receipt_id = booking.refund_receipt_id
        if outstanding > 0:
            if not booking.payment_intent_id:
                raise DependencyFailureException("Booking has no payment reference to refund against")
            try:
                receipt = await self.payment_gateway.refund(
                    booking.payment_intent_id,
                    outstanding,
                    RefundReasonEnum.DISPUTE_RESOLVED_CUSTOMER,
                    {"booking_id": str(booking.id), "operation": "dispute", "resolved_by": str(actor.id)},
                    idempotency_key=payment_idempotency_key("dispute", booking.id),
                )
            except Exception as exc:
                PAYMENT_GATEWAY_FAILURES_TOTAL.labels(operation="dispute_refund").inc()
                logger.exception("Dispute refund of %s for booking %s failed", outstanding, booking.id)
                raise DependencyFailureException("Failed to process refund for dispute resolution") from exc
            receipt_id = receipt.receipt_id

        values: dict[str, Any] = {
            "dispute_status": DisputeStatusEnum.RESOLVED_CUSTOMER,
            "dispute_resolved_at": now,
            "dispute_resolution_notes": notes,
            "dispute_resolved_by": actor.id,
            "refund_reason": RefundReasonEnum.DISPUTE_RESOLVED_CUSTOMER,
            "fee_charged": 0,
            "refund_receipt_id": receipt_id,
        }
        if captured:
            target_status = BookingStatusEnum.REFUNDED
            values.update(
                status=target_status,
                deposit_status=DepositStatusEnum.REFUNDED,
                refund_amount=already_refunded + outstanding,
                refund_explanation="Dispute resolved in the customer's favour: full deposit refunded",
            )
        else:
            # Nothing was ever collected, so there is no payout to record.
            target_status = booking.status
            values.update(
                refund_amount=0,
                refund_explanation="Dispute resolved in the customer's favour: no deposit was collected, nothing refunded",
            )

        try:
            booking = await self._apply_transition(booking, target_status, DisputeStatusEnum.PENDING, **values)
        except InvalidTransitionException:
            if outstanding > 0:
                logger.error(
                    "Dispute refund %s issued for booking %s but the resolution lost a concurrent update",
                    receipt_id,
                    booking.id,
                )
            raise
        return booking, outstanding

    async def get_booking(self, booking_id: UUID, actor: User) -> Booking:
        """Return one booking the actor may see."""
        booking = await self._get_booking(booking_id)
        self._validate_actor_access(booking, actor)
        return booking

    async def list_bookings(self, actor: User, limit: int, offset: int) -> tuple[list[Booking], int]:
        """List bookings visible to the actor."""
        return await self.booking_repository.list_bookings(actor.id, actor.role.name, limit, offset)

    async def get_no_show_stats(self, actor: User) -> dict[str, float | int]:
        """No-show totals for a provider, or platform-wide for admins."""
        if actor.role.name == RoleEnum.CUSTOMER:
            raise ForbiddenException("Only providers and admins can view no-show statistics")
        provider_id = None if actor.role.name == RoleEnum.ADMIN else actor.id
        total, fees = await self.booking_repository.no_show_stats(provider_id)
        return {
            "total_no_shows": total,
            "total_fees_charged": fees,
            "average_fee": fees / total if total else 0.0,
        }


def build_booking_service(session: AsyncSession, payment_gateway: PaymentGateway) -> BookingService:
    """Wire a booking service onto one DB session."""
    return BookingService(
        booking_repository=BookingRepository(session),
        services_repository=ServicesRepository(session),
        audit_repository=AuditRepository(session),
        payment_gateway=payment_gateway,
        notifier=OutboxNotificationDispatcher(session),
    )


async def get_booking_service(
    session: AsyncSession = Depends(get_db_session),
    payment_gateway: PaymentGateway = Depends(get_payment_gateway),
) -> BookingService:
    """Dependency provider for booking service."""
    return build_booking_service(session, payment_gateway)
