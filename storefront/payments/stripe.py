from __future__ import annotations

import json
from typing import Any

import stripe

from storefront.core.config import Settings, get_settings
from storefront.core.money import to_minor_units
from storefront.errors import PaymentSessionError, WebhookRejected
from storefront.payments.base import PaymentLine, PaymentRequest, PaymentSession

ALLOWED_SHIPPING_COUNTRIES = ["US", "CA", "GB", "AU", "IN"]


class StripeGateway:
    provider = "stripe"

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def _line_items(self, request: PaymentRequest) -> list[dict[str, Any]]:
        lines: list[PaymentLine] = list(request.lines)
        if request.discount_amount > 0:
            # Checkout line items cannot be negative; charge the discounted order as one line.
            lines = [PaymentLine(name=f"Order {request.order_number}", unit_amount=request.total, quantity=1)]
        else:
            if request.tax_amount > 0:
                lines.append(PaymentLine(name="Tax", unit_amount=request.tax_amount, quantity=1))
            if request.shipping_amount > 0:
                lines.append(PaymentLine(name="Shipping", unit_amount=request.shipping_amount, quantity=1))
        return [
            {
                "price_data": {
                    "currency": self.settings.stripe_currency,
                    "product_data": {"name": line.name},
                    "unit_amount": to_minor_units(line.unit_amount),
                },
                "quantity": line.quantity,
            }
            for line in lines
        ]

    def build_session_params(self, request: PaymentRequest) -> dict[str, Any]:
        app_url = self.settings.app_url.rstrip("/")
        return {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": self._line_items(request),
            "customer_email": request.email,
            "success_url": f"{app_url}/checkout/success?order={request.order_id}",
            "cancel_url": f"{app_url}/checkout?cancelled=true",
            "metadata": {"orderId": request.order_id, "orderNumber": request.order_number, **request.metadata},
            "shipping_address_collection": {"allowed_countries": ALLOWED_SHIPPING_COUNTRIES},
            "billing_address_collection": "required",
        }

    def create_session(self, request: PaymentRequest) -> PaymentSession:
        if not self.settings.stripe_secret_key:
            raise PaymentSessionError("stripe is not configured", order_id=request.order_id)
        params = self.build_session_params(request)
        try:
            session = stripe.checkout.Session.create(api_key=self.settings.stripe_secret_key, **params)
        except stripe.StripeError as exc:
            raise PaymentSessionError(f"stripe session creation failed: {exc}", order_id=request.order_id) from exc
        return PaymentSession(
            provider=self.provider,
            reference=str(session.id),
            data={"sessionId": session.id, "url": session.url},
        )


def parse_webhook_event(
    payload: bytes,
    signature_header: str,
    secret: str,
    tolerance_seconds: int = 300,
) -> dict[str, Any]:
    """Verify a ``Stripe-Signature`` header and return the decoded event object."""
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise WebhookRejected("invalid webhook payload") from exc
    try:
        stripe.WebhookSignature.verify_header(text, signature_header, secret, tolerance_seconds)
    except stripe.SignatureVerificationError as exc:
        raise WebhookRejected("invalid webhook signature") from exc
    try:
        event = json.loads(text)
    except ValueError as exc:
        raise WebhookRejected("invalid webhook payload") from exc
    if not isinstance(event, dict):
        raise WebhookRejected("webhook payload must be a JSON object")
    return event
