from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from app.core.enums import RefundReasonEnum
from app.modules.payments.gateway import StripePaymentGateway, payment_idempotency_key


class RecordingCall:
    def __init__(self, response: dict[str, Any] | None = None, error: Exception | None = None) -> None:
        self.response = response or {}
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def __call__(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def make_sdk(**overrides: Any) -> SimpleNamespace:
    sdk = SimpleNamespace(
        api_key=None,
        PaymentIntent=SimpleNamespace(
            create=RecordingCall({"id": "pi_123", "client_secret": "pi_123_secret"}),
            cancel=RecordingCall({"id": "pi_123", "status": "canceled"}),
        ),
        Refund=SimpleNamespace(
            create=RecordingCall({"id": "re_456", "amount": 7000, "status": "succeeded"}),
        ),
        Webhook=SimpleNamespace(
            construct_event=lambda payload, signature, secret: {"type": "payment_intent.succeeded", "secret": secret},
        ),
    )
    for key, value in overrides.items():
        setattr(sdk, key, value)
    return sdk


def make_gateway(sdk: SimpleNamespace, **kwargs: Any) -> StripePaymentGateway:
    kwargs.setdefault("secret_key", "sk_test_123")
    kwargs.setdefault("webhook_secret", "whsec_123")
    return StripePaymentGateway(timeout_seconds=5, stripe_sdk=sdk, **kwargs)


def test_idempotency_key_is_stable_per_booking_and_operation() -> None:
    assert payment_idempotency_key("cancel", "b-1") == "cancel-b-1"
    assert payment_idempotency_key("cancel", "b-1") != payment_idempotency_key("dispute", "b-1")


@pytest.mark.asyncio
async def test_deposit_intent_is_created_with_idempotency_key() -> None:
    sdk = make_sdk()
    gateway = make_gateway(sdk)

    intent = await gateway.create_deposit_intent(
        10999,
        "AUD",
        {"booking_id": "b-1"},
        idempotency_key="deposit-b-1",
    )

    assert intent.intent_id == "pi_123"
    assert intent.client_secret == "pi_123_secret"
    assert sdk.api_key == "sk_test_123"
    assert sdk.PaymentIntent.create.calls == [
        {
            "amount": 10999,
            "currency": "aud",
            "metadata": {"booking_id": "b-1"},
            "automatic_payment_methods": {"enabled": True},
            "idempotency_key": "deposit-b-1",
        },
    ]


@pytest.mark.asyncio
async def test_refund_targets_the_deposit_intent() -> None:
    sdk = make_sdk()
    gateway = make_gateway(sdk)

    receipt = await gateway.refund(
        "pi_123",
        7000,
        RefundReasonEnum.LATE_CANCELLATION,
        {"booking_id": "b-1"},
        idempotency_key="cancel-b-1",
    )

    assert receipt.receipt_id == "re_456"
    assert receipt.amount == 7000
    assert receipt.status == "succeeded"
    call = sdk.Refund.create.calls[0]
    assert call["payment_intent"] == "pi_123"
    assert call["amount"] == 7000
    assert call["idempotency_key"] == "cancel-b-1"
    assert call["metadata"] == {"booking_id": "b-1", "refund_reason": "late_cancellation"}


@pytest.mark.asyncio
async def test_cancel_deposit_intent_voids_the_intent() -> None:
    sdk = make_sdk()
    gateway = make_gateway(sdk)

    await gateway.cancel_deposit_intent("pi_123", idempotency_key="void-b-1")

    assert sdk.PaymentIntent.cancel.calls == [
        {
            "intent": "pi_123",
            "cancellation_reason": "requested_by_customer",
            "idempotency_key": "void-b-1",
        },
    ]


@pytest.mark.asyncio
async def test_refund_rejects_non_positive_amount() -> None:
    sdk = make_sdk()
    gateway = make_gateway(sdk)

    with pytest.raises(ValueError):
        await gateway.refund("pi_123", 0, RefundReasonEnum.WITHIN_WINDOW, {})
    assert sdk.Refund.create.calls == []


@pytest.mark.asyncio
async def test_sdk_errors_propagate() -> None:
    sdk = make_sdk(Refund=SimpleNamespace(create=RecordingCall(error=RuntimeError("card_declined"))))
    gateway = make_gateway(sdk)

    with pytest.raises(RuntimeError, match="card_declined"):
        await gateway.refund("pi_123", 100, RefundReasonEnum.WITHIN_WINDOW, {})


@pytest.mark.asyncio
async def test_missing_secret_key_fails_before_calling_stripe(monkeypatch: pytest.MonkeyPatch) -> None:
    sdk = make_sdk()
    gateway = make_gateway(sdk)
    monkeypatch.setattr(gateway, "secret_key", None)

    with pytest.raises(ValueError, match="secret key"):
        await gateway.create_deposit_intent(100, "AUD", {})
    assert sdk.PaymentIntent.create.calls == []


def test_webhook_requires_signature_and_secret() -> None:
    gateway = make_gateway(make_sdk())

    event = gateway.construct_webhook_event(b"{}", "t=1,v1=abc")
    assert event["secret"] == "whsec_123"

    with pytest.raises(ValueError):
        gateway.construct_webhook_event(b"{}", None)
