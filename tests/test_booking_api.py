from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any
from uuid import UUID, uuid4

import httpx
import pytest

from app.core.enums import (
    BookingStatusEnum,
    DepositStatusEnum,
    DisputeStatusEnum,
    PolicySourceEnum,
    RefundReasonEnum,
    RoleEnum,
)
from app.main import app
from app.modules.booking.router import get_no_show_detector
from app.modules.booking.service import get_booking_service
from app.modules.identity.service import get_current_user
from app.modules.payments.gateway import get_payment_gateway
from app.modules.policy.refund_calculator import RefundResult
from app.shared.exceptions import DisputeAlreadyPendingException, InvalidTransitionException

FIXED_NOW = datetime(2026, 6, 1, 9, 0, tzinfo=UTC)


def make_actor(role: RoleEnum) -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), role=SimpleNamespace(name=role))


def make_booking(**overrides) -> SimpleNamespace:
    values = {
        "id": uuid4(),
        "service_id": uuid4(),
        "customer_id": uuid4(),
        "provider_id": uuid4(),
        "booking_date": FIXED_NOW + timedelta(days=2),
        "duration_minutes": 90,
        "timezone": "UTC",
        "status": BookingStatusEnum.CONFIRMED,
        "deposit_amount": 10000,
        "deposit_status": DepositStatusEnum.PAID,
        "flex_pass_purchased": False,
        "flex_pass_fee": None,
        "confirmed_at": FIXED_NOW,
        "completed_at": None,
        "cancellation_time": None,
        "cancellation_reason": None,
        "refund_amount": None,
        "refund_reason": None,
        "refund_explanation": None,
        "fee_charged": None,
        "dispute_status": DisputeStatusEnum.NONE,
        "dispute_reason": None,
        "dispute_created_at": None,
        "dispute_resolved_at": None,
        "dispute_resolution_notes": None,
        "created_at": FIXED_NOW,
        "updated_at": FIXED_NOW,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@dataclass
class FakeBookingService:
    error: Exception | None = None
    calls: list[tuple[str, Any]] = field(default_factory=list)

    def _check(self) -> None:
        if self.error is not None:
            raise self.error

    async def cancel_booking(self, booking_id: UUID, actor: Any, reason: str | None = None) -> SimpleNamespace:
        self._check()
        self.calls.append(("cancel", reason))
        return make_booking(
            id=booking_id,
            status=BookingStatusEnum.CANCELLED,
            refund_amount=7000,
            fee_charged=3000,
            refund_reason=RefundReasonEnum.LATE_CANCELLATION,
        )

    async def quote_refund(self, booking_id: UUID, actor: Any, timezone: str | None = None) -> RefundResult:
        self.calls.append(("quote", timezone))
        return RefundResult(
            refund_amount=7000,
            fee_charged=3000,
            reason=RefundReasonEnum.LATE_CANCELLATION,
            explanation="Late",
            hours_until_booking=12.0,
            policy_used=PolicySourceEnum.SNAPSHOT,
        )

    async def create_dispute(self, booking_id: UUID, actor: Any, reason: str) -> SimpleNamespace:
        self._check()
        return make_booking(id=booking_id, dispute_status=DisputeStatusEnum.PENDING, dispute_reason=reason)

    async def resolve_dispute(self, booking_id: UUID, actor: Any, resolution: Any, notes: str | None = None) -> SimpleNamespace:
        return make_booking(id=booking_id)

    async def mark_no_show(self, booking_id: UUID, marked_by: Any = None) -> SimpleNamespace:
        self.calls.append(("no_show", marked_by))
        return make_booking(id=booking_id, status=BookingStatusEnum.NO_SHOW, fee_charged=5000)

    async def confirm_payment(self, payment_intent_id: str, charge_id: str | None = None) -> SimpleNamespace:
        self._check()
        self.calls.append(("confirm", (payment_intent_id, charge_id)))
        return make_booking()

    async def handle_failed_payment(self, payment_intent_id: str) -> SimpleNamespace:
        self.calls.append(("failed", payment_intent_id))
        return make_booking(status=BookingStatusEnum.CANCELLED)


class FakeWebhookGateway:
    def construct_webhook_event(self, payload: bytes, signature: str | None) -> dict:
        if signature != "valid":
            raise ValueError("No signatures found matching the expected signature for payload")
        return {
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_777", "latest_charge": "ch_777"}},
        }


@dataclass
class FakeDetector:
    result: dict = field(default_factory=dict)

    async def process_batch(self) -> dict:
        return self.result


@pytest.fixture
def booking_service():
    service = FakeBookingService()
    app.dependency_overrides[get_booking_service] = lambda: service
    yield service
    app.dependency_overrides.clear()


def login_as(actor: SimpleNamespace) -> None:
    app.dependency_overrides[get_current_user] = lambda: actor


def make_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_cancel_returns_refund_decision(booking_service: FakeBookingService) -> None:
    login_as(make_actor(RoleEnum.CUSTOMER))
    booking_id = uuid4()

    async with make_client() as client:
        response = await client.post(f"/api/v1/bookings/{booking_id}/cancel", json={"reason": "Sick"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "cancelled"
    assert body["refund_amount"] == 7000
    assert body["refund_reason"] == "late_cancellation"
    assert booking_service.calls == [("cancel", "Sick")]


@pytest.mark.asyncio
async def test_invalid_transition_maps_to_conflict(booking_service: FakeBookingService) -> None:
    login_as(make_actor(RoleEnum.CUSTOMER))
    booking_service.error = InvalidTransitionException("Booking is already cancelled")

    async with make_client() as client:
        response = await client.post(f"/api/v1/bookings/{uuid4()}/cancel", json={})

    assert response.status_code == 409
    assert response.json() == {
        "error": {"code": "invalid_transition", "message": "Booking is already cancelled"},
    }


@pytest.mark.asyncio
async def test_duplicate_dispute_has_its_own_error_code(booking_service: FakeBookingService) -> None:
    login_as(make_actor(RoleEnum.CUSTOMER))
    booking_service.error = DisputeAlreadyPendingException("This booking already has a pending dispute")

    async with make_client() as client:
        response = await client.post(f"/api/v1/bookings/{uuid4()}/dispute", json={"reason": "Again"})

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "dispute_already_pending"


@pytest.mark.asyncio
async def test_empty_dispute_reason_fails_validation(booking_service: FakeBookingService) -> None:
    login_as(make_actor(RoleEnum.CUSTOMER))

    async with make_client() as client:
        response = await client.post(f"/api/v1/bookings/{uuid4()}/dispute", json={"reason": ""})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_only_admins_resolve_disputes(booking_service: FakeBookingService) -> None:
    login_as(make_actor(RoleEnum.CUSTOMER))

    async with make_client() as client:
        response = await client.post(
            f"/api/v1/bookings/{uuid4()}/dispute/resolve",
            json={"resolution": "customer"},
        )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "http_error"


@pytest.mark.asyncio
async def test_refund_quote_passes_timezone(booking_service: FakeBookingService) -> None:
    login_as(make_actor(RoleEnum.CUSTOMER))

    async with make_client() as client:
        response = await client.get(
            f"/api/v1/bookings/{uuid4()}/refund-quote",
            params={"timezone": "Australia/Sydney"},
        )

    assert response.status_code == 200
    assert response.json()["refund_amount"] == 7000
    assert response.json()["policy_used"] == "snapshot"
    assert booking_service.calls == [("quote", "Australia/Sydney")]


@pytest.mark.asyncio
async def test_admin_no_show_acts_as_system(booking_service: FakeBookingService) -> None:
    login_as(make_actor(RoleEnum.ADMIN))

    async with make_client() as client:
        response = await client.post(f"/api/v1/bookings/{uuid4()}/no-show")

    assert response.status_code == 200
    assert response.json()["status"] == "no_show"
    assert booking_service.calls == [("no_show", None)]


@pytest.mark.asyncio
async def test_admin_can_trigger_no_show_sweep(booking_service: FakeBookingService) -> None:
    login_as(make_actor(RoleEnum.ADMIN))
    failed_id = uuid4()
    detector = FakeDetector(
        {
            "total_found": 2,
            "total_processed": 1,
            "total_failed": 1,
            "errors": [{"booking_id": failed_id, "error": "boom"}],
        },
    )
    app.dependency_overrides[get_no_show_detector] = lambda: detector

    async with make_client() as client:
        response = await client.post("/api/v1/bookings/no-shows/process")

    assert response.status_code == 200
    assert response.json()["total_failed"] == 1
    assert response.json()["errors"] == [{"booking_id": str(failed_id), "error": "boom"}]


@pytest.mark.asyncio
async def test_stripe_webhook_confirms_deposit(booking_service: FakeBookingService) -> None:
    app.dependency_overrides[get_payment_gateway] = FakeWebhookGateway

    async with make_client() as client:
        response = await client.post(
            "/api/v1/payments/stripe/webhook",
            content=b"{}",
            headers={"Stripe-Signature": "valid"},
        )

    assert response.status_code == 200
    assert response.json() == {"received": True, "handled": True}
    assert booking_service.calls == [("confirm", ("pi_777", "ch_777"))]


@pytest.mark.asyncio
async def test_stripe_webhook_rejects_bad_signature(booking_service: FakeBookingService) -> None:
    app.dependency_overrides[get_payment_gateway] = FakeWebhookGateway

    async with make_client() as client:
        response = await client.post(
            "/api/v1/payments/stripe/webhook",
            content=b"{}",
            headers={"Stripe-Signature": "forged"},
        )

    assert response.status_code == 400
    assert booking_service.calls == []


@pytest.mark.asyncio
async def test_redelivered_webhook_is_acknowledged(booking_service: FakeBookingService) -> None:
    app.dependency_overrides[get_payment_gateway] = FakeWebhookGateway
    booking_service.error = InvalidTransitionException("Cannot transition booking from confirmed to confirmed")

    async with make_client() as client:
        response = await client.post(
            "/api/v1/payments/stripe/webhook",
            content=b"{}",
            headers={"Stripe-Signature": "valid"},
        )

    assert response.status_code == 200
    assert response.json() == {"received": True, "handled": False}
