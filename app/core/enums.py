"""Core enums used across modules."""

from enum import StrEnum


class RoleEnum(StrEnum):
    """System roles."""

    CUSTOMER = "customer"
    PROVIDER = "provider"
    ADMIN = "admin"


class BookingStatusEnum(StrEnum):
    """Booking lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    REFUNDED = "refunded"


class DepositStatusEnum(StrEnum):
    """Deposit capture status."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class DepositTypeEnum(StrEnum):
    """How a service expresses its deposit."""

    FIXED = "fixed"
    PERCENTAGE = "percentage"


class DisputeStatusEnum(StrEnum):
    """Dispute workflow status nested inside a booking."""

    NONE = "none"
    PENDING = "pending"
    RESOLVED_CUSTOMER = "resolved_customer"
    RESOLVED_PROVIDER = "resolved_provider"


class DisputeResolutionEnum(StrEnum):
    """Party a dispute is resolved in favour of."""

    CUSTOMER = "customer"
    PROVIDER = "provider"


class RefundReasonEnum(StrEnum):
    """Machine-readable refund decision codes."""

    WITHIN_WINDOW = "within_window"
    LATE_CANCELLATION = "late_cancellation"
    FLEX_PASS_PROTECTION = "flex_pass_protection"
    NO_REFUND_TOO_LATE = "no_refund_too_late"
    NO_REFUND_POLICY = "no_refund_policy"
    NO_SHOW = "no_show"
    ALREADY_REFUNDED = "already_refunded"
    DISPUTE_RESOLVED_CUSTOMER = "dispute_resolved_customer"
    CAPTURED_AFTER_CANCELLATION = "captured_after_cancellation"


class PolicySourceEnum(StrEnum):
    """Which policy terms a refund decision was based on."""

    SNAPSHOT = "snapshot"
    NONE = "none"


class NotificationStatusEnum(StrEnum):
    """Notification delivery status."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class OutboxStatusEnum(StrEnum):
    """Outbox event status for integration publishing."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class NotificationEventEnum(StrEnum):
    """Outbound booking event kinds."""

    BOOKING_CREATED = "booking.created"
    BOOKING_CONFIRMED = "booking.confirmed"
    BOOKING_REMINDER = "booking.reminder"
    BOOKING_PAYMENT_FAILED = "booking.payment_failed"
    BOOKING_CANCELLED = "booking.cancelled"
    BOOKING_COMPLETED = "booking.completed"
    BOOKING_NO_SHOW = "booking.no_show"
    DISPUTE_CREATED = "dispute.created"
    DISPUTE_RESOLVED = "dispute.resolved"
