"""Refund and fee decisions for cancelled and no-show bookings.

All functions here are deterministic: the same booking, clock value and
timezone always produce the same result. Nothing is read from the database
or the live service configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from app.core.enums import BookingStatusEnum, DepositStatusEnum, PolicySourceEnum, RefundReasonEnum
from app.modules.policy.snapshot import PolicySnapshot, load_policy_snapshot
from app.shared.exceptions import InvalidInputException
from app.shared.utils import format_cents, hours_between


@dataclass(frozen=True, slots=True)
class RefundResult:
    refund_amount: int
    fee_charged: int
    reason: RefundReasonEnum
    explanation: str
    hours_until_booking: float
    policy_used: PolicySourceEnum


class RefundRuleHook(Protocol):
    """Vertical-specific adjustment applied on top of a snapshot-based decision."""

    def __call__(self, booking: Any, policy: PolicySnapshot, result: RefundResult) -> RefundResult:
        ...


def clamp_refund_amount(refund_amount: int, deposit_amount: int) -> int:
    """Bound a refund to ``[0, deposit_amount]``."""
    return max(0, min(refund_amount, deposit_amount))


def _require_deposit(booking: Any) -> int:
    deposit_amount = booking.deposit_amount
    if not isinstance(deposit_amount, int) or isinstance(deposit_amount, bool) or deposit_amount <= 0:
        raise InvalidInputException("Invalid deposit amount: must be greater than 0")
    return deposit_amount


def _is_refunded(booking: Any) -> bool:
    return (
        booking.deposit_status == DepositStatusEnum.REFUNDED
        or booking.status == BookingStatusEnum.REFUNDED
    )


def _decide(
    booking: Any,
    policy: PolicySnapshot,
    deposit_amount: int,
    hours_until_booking: float,
    currency: str,
) -> RefundResult:
    if booking.flex_pass_purchased:
        flex_fee = booking.flex_pass_fee or 0
        return RefundResult(
            refund_amount=deposit_amount,
            fee_charged=0,
            reason=RefundReasonEnum.FLEX_PASS_PROTECTION,
            explanation=(
                "Full refund due to cancellation protection purchased "
                f"(Flex Pass for {format_cents(flex_fee, currency)})"
            ),
            hours_until_booking=hours_until_booking,
            policy_used=PolicySourceEnum.SNAPSHOT,
        )

    window = policy.cancellation_window_hours

    if not policy.allow_partial_refunds and hours_until_booking < window:
        return RefundResult(
            refund_amount=0,
            fee_charged=deposit_amount,
            reason=RefundReasonEnum.NO_REFUND_POLICY,
            explanation=f"No refunds allowed for this service. Cancellation window: {window} hours",
            hours_until_booking=hours_until_booking,
            policy_used=PolicySourceEnum.SNAPSHOT,
        )

    if hours_until_booking < policy.minimum_cancellation_hours:
        return RefundResult(
            refund_amount=0,
            fee_charged=deposit_amount,
            reason=RefundReasonEnum.NO_REFUND_TOO_LATE,
            explanation=(
                "Cancellation too close to booking time. "
                f"Minimum required: {policy.minimum_cancellation_hours} hours, "
                f"time remaining: {hours_until_booking:.1f} hours"
            ),
            hours_until_booking=hours_until_booking,
            policy_used=PolicySourceEnum.SNAPSHOT,
        )

    if hours_until_booking >= window:
        return RefundResult(
            refund_amount=deposit_amount,
            fee_charged=0,
            reason=RefundReasonEnum.WITHIN_WINDOW,
            explanation=(
                f"Cancelled {hours_until_booking:.1f} hours before booking. "
                f"Free cancellation window: {window} hours"
            ),
            hours_until_booking=hours_until_booking,
            policy_used=PolicySourceEnum.SNAPSHOT,
        )

    late_fee = policy.late_cancellation_fee or 0
    refund_amount = max(0, deposit_amount - late_fee)
    return RefundResult(
        refund_amount=refund_amount,
        fee_charged=late_fee,
        reason=RefundReasonEnum.LATE_CANCELLATION,
        explanation=(
            f"Cancelled {hours_until_booking:.1f} hours before booking (outside {window}-hour window). "
            f"Late cancellation fee: {format_cents(late_fee, currency)}. "
            f"Refund: {format_cents(refund_amount, currency)}"
        ),
        hours_until_booking=hours_until_booking,
        policy_used=PolicySourceEnum.SNAPSHOT,
    )


def calculate_refund(
    booking: Any,
    now: datetime,
    timezone: str = "UTC",
    *,
    currency: str = "AUD",
    rule_hook: RefundRuleHook | None = None,
) -> RefundResult:
    """Compute refund, fee and reason for cancelling ``booking`` at ``now``.

    Rules are evaluated in order and the first match wins: already refunded,
    invalid deposit, missing snapshot, flex pass, partial refunds disallowed,
    too late, inside the free window, late cancellation. The minimum-notice
    cutoff is exclusive and the free-cancellation window is inclusive.
    """
    if _is_refunded(booking):
        return RefundResult(
            refund_amount=0,
            fee_charged=0,
            reason=RefundReasonEnum.ALREADY_REFUNDED,
            explanation="Booking has already been refunded",
            hours_until_booking=0.0,
            policy_used=PolicySourceEnum.NONE,
        )

    deposit_amount = _require_deposit(booking)

    policy = load_policy_snapshot(booking.policy_snapshot)
    if policy is None:
        return RefundResult(
            refund_amount=0,
            fee_charged=deposit_amount,
            reason=RefundReasonEnum.NO_REFUND_POLICY,
            explanation="No refund policy available. Please contact support for assistance.",
            hours_until_booking=0.0,
            policy_used=PolicySourceEnum.NONE,
        )

    hours_until_booking = hours_between(now, booking.booking_date, timezone)
    result = _decide(booking, policy, deposit_amount, hours_until_booking, currency)

    if rule_hook is not None:
        adjusted = rule_hook(booking, policy, result)
        result = RefundResult(
            refund_amount=clamp_refund_amount(adjusted.refund_amount, deposit_amount),
            fee_charged=clamp_refund_amount(adjusted.fee_charged, deposit_amount),
            reason=adjusted.reason,
            explanation=adjusted.explanation,
            hours_until_booking=hours_until_booking,
            policy_used=PolicySourceEnum.SNAPSHOT,
        )
    return result


def calculate_no_show_fee(booking: Any) -> int:
    """Fee for a no-show: the snapshot's no-show fee, else the full deposit."""
    policy = load_policy_snapshot(booking.policy_snapshot)
    if policy is None or policy.no_show_fee is None:
        return booking.deposit_amount
    return policy.no_show_fee
