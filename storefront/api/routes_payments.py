from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from storefront.core.config import get_settings
from storefront.orders import confirm_payment, find_order_by_payment_session, get_order, mark_payment_failed
from storefront.payments import parse_webhook_event, verify_payment_signature
from storefront.persistence.db import get_session
from storefront.pricing.models import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments"])


class RazorpayVerification(CamelModel):
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


def _confirmation_payload(order, outcome) -> dict:
    return {
        "order": {
            "id": order.id,
            "orderNumber": order.order_number,
            "status": order.status,
            "paymentStatus": order.payment_status,
        },
        "discountRedemption": outcome.value if outcome is not None else None,
    }


@router.post("/payments/razorpay/verify")
def verify_razorpay_payment(payload: RazorpayVerification, session: Session = Depends(get_session)):
    settings = get_settings()
    if not settings.razorpay_key_secret:
        raise HTTPException(status_code=503, detail="razorpay is not configured")
    if not verify_payment_signature(
        payload.razorpay_order_id,
        payload.razorpay_payment_id,
        payload.razorpay_signature,
        settings.razorpay_key_secret,
    ):
        raise HTTPException(status_code=400, detail="invalid payment signature")

    order = find_order_by_payment_session(session, payload.razorpay_order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="order not found")
    outcome = confirm_payment(session, order, payload.razorpay_payment_id)
    return _confirmation_payload(order, outcome)


def _mapping(value) -> dict:
    return value if isinstance(value, dict) else {}


async def _raw_body(request: Request) -> bytes:
    return await request.body()


@router.post("/payments/stripe/webhook")
def stripe_webhook(
    body: bytes = Depends(_raw_body),
    stripe_signature: str | None = Header(default=None),
    session: Session = Depends(get_session),
):
    settings = get_settings()
    if not settings.stripe_webhook_secret:
        raise HTTPException(status_code=503, detail="stripe webhook is not configured")
    if not stripe_signature:
        raise HTTPException(status_code=400, detail="missing stripe-signature header")
    event = parse_webhook_event(
        body,
        stripe_signature,
        settings.stripe_webhook_secret,
        tolerance_seconds=settings.stripe_webhook_tolerance_seconds,
    )

    event_type = event.get("type")
    obj = _mapping(_mapping(event.get("data")).get("object"))
    order_id = _mapping(obj.get("metadata")).get("orderId")
    order = get_order(session, order_id) if order_id else None
    if order is None and obj.get("id"):
        order = find_order_by_payment_session(session, obj["id"])
    if order is None:
        logger.warning("stripe webhook for unknown order: type=%s session=%s", event_type, obj.get("id"))
        return {"received": True, "handled": False}

    if event_type == "checkout.session.completed":
        reference = obj.get("payment_intent") or obj.get("id")
        outcome = confirm_payment(session, order, str(reference))
        return {"received": True, "handled": True, **_confirmation_payload(order, outcome)}
    if event_type in {"checkout.session.expired", "checkout.session.async_payment_failed"}:
        mark_payment_failed(session, order)
        return {"received": True, "handled": True}
    return {"received": True, "handled": False}
