"""Payment gateway collaborators for deposits and refunds."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import anyio

from app.core.config import get_settings
from app.core.enums import RefundReasonEnum

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DepositIntent:
    intent_id: str
    client_secret: str | None


@dataclass(frozen=True, slots=True)
class RefundReceipt:
    receipt_id: str
    amount: int
    status: str


class PaymentGateway(Protocol):
    """Out-of-process deposit capture and refund executor."""

    async def create_deposit_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        *,
        idempotency_key: str | None = None,
    ) -> DepositIntent:
        ...

    async def refund(
        self,
        payment_reference: str,
        amount: int,
        reason: RefundReasonEnum | str,
        metadata: dict[str, str],
        *,
        idempotency_key: str | None = None,
    ) -> RefundReceipt:
        ...

    async def cancel_deposit_intent(
        self,
        payment_reference: str,
        *,
        idempotency_key: str | None = None,
    ) -> None:
        ...


def payment_idempotency_key(operation: str, booking_id: Any) -> str:
    """Stable key so a retried gateway call for the same booking is applied once."""
    return f"{operation}-{booking_id}"


class StripePaymentGateway:
    """Deposits as Stripe PaymentIntents, refunds against the same intent."""

    def __init__(
        self,
        *,
        secret_key: str | None = None,
        webhook_secret: str | None = None,
        timeout_seconds: float | None = None,
        stripe_sdk: Any | None = None,
    ) -> None:
        settings = get_settings()
        if stripe_sdk is None:
            import stripe as stripe_sdk

        self.stripe = stripe_sdk
        self.secret_key = secret_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self.timeout_seconds = timeout_seconds or settings.payment_gateway_timeout_seconds

    async def _call(self, fn: Callable[..., Any], /, **kwargs: Any) -> Any:
        if not self.secret_key:
            raise ValueError("Stripe secret key not configured")
        self.stripe.api_key = self.secret_key

        def _sync_call() -> Any:
            return fn(**kwargs)

        with anyio.fail_after(self.timeout_seconds):
            return await anyio.to_thread.run_sync(_sync_call)

    async def create_deposit_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict[str, str],
        *,
        idempotency_key: str | None = None,
    ) -> DepositIntent:
        extra: dict[str, Any] = {}
        if idempotency_key:
            extra["idempotency_key"] = idempotency_key
        intent = await self._call(
            self.stripe.PaymentIntent.create,
            amount=amount,
            currency=currency.lower(),
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
            **extra,
        )
        return DepositIntent(intent_id=str(intent["id"]), client_secret=intent.get("client_secret"))

    async def refund(
        self,
        payment_reference: str,
        amount: int,
        reason: RefundReasonEnum | str,
        metadata: dict[str, str],
        *,
        idempotency_key: str | None = None,
    ) -> RefundReceipt:
        if amount <= 0:
            raise ValueError("Refund amount must be positive")

        extra: dict[str, Any] = {}
        if idempotency_key:
            extra["idempotency_key"] = idempotency_key
        refund = await self._call(
            self.stripe.Refund.create,
            payment_intent=payment_reference,
            amount=amount,
            reason="requested_by_customer",
            metadata={**metadata, "refund_reason": str(reason)},
            **extra,
        )

        receipt = RefundReceipt(
            receipt_id=str(refund["id"]),
            amount=int(refund.get("amount", amount)),
            status=str(refund.get("status", "unknown")),
        )
        logger.info(
            "Stripe refund %s created for %s (%s cents)",
            receipt.receipt_id,
            payment_reference,
            receipt.amount,
        )
        return receipt

    async def cancel_deposit_intent(
        self,
        payment_reference: str,
        *,
        idempotency_key: str | None = None,
    ) -> None:
        """Void an uncaptured deposit so the customer can no longer pay it."""
        extra: dict[str, Any] = {}
        if idempotency_key:
            extra["idempotency_key"] = idempotency_key
        await self._call(
            self.stripe.PaymentIntent.cancel,
            intent=payment_reference,
            cancellation_reason="requested_by_customer",
            **extra,
        )
        logger.info("Stripe payment intent %s cancelled", payment_reference)

    def construct_webhook_event(self, payload: bytes, signature: str | None) -> Any:
        """Verify a webhook delivery and return the parsed event."""
        if not self.webhook_secret:
            raise ValueError("Stripe webhook secret not configured")
        if not signature:
            raise ValueError("Missing Stripe-Signature header")
        return self.stripe.Webhook.construct_event(payload, signature, self.webhook_secret)


def get_payment_gateway() -> StripePaymentGateway:
    """Dependency provider for the configured payment gateway."""
    return StripePaymentGateway()
