"""Payment provider webhook router."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from app.modules.booking.service import BookingService, get_booking_service
from app.modules.payments.gateway import StripePaymentGateway, get_payment_gateway
from app.shared.exceptions import InvalidTransitionException, NotFoundException

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/stripe/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    gateway: StripePaymentGateway = Depends(get_payment_gateway),
    service: BookingService = Depends(get_booking_service),
) -> dict[str, str | bool]:
    """Apply deposit payment outcomes reported by Stripe."""
    payload = await request.body()
    try:
        event = gateway.construct_webhook_event(payload, stripe_signature)
    except Exception as exc:
        logger.warning("Rejected Stripe webhook: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook") from exc

    event_type = event["type"]
    intent = event["data"]["object"]
    try:
        if event_type == "payment_intent.succeeded":
            await service.confirm_payment(intent["id"], intent.get("latest_charge"))
        elif event_type == "payment_intent.payment_failed":
            await service.handle_failed_payment(intent["id"])
        else:
            return {"received": True, "handled": False}
    except (InvalidTransitionException, NotFoundException) as exc:
        # Redelivered or out-of-order events must not trigger provider retries.
        logger.info("Ignored Stripe event %s for %s: %s", event_type, intent["id"], exc.message)
        return {"received": True, "handled": False}
    return {"received": True, "handled": True}
