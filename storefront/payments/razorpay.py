from __future__ import annotations

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError

from storefront.core.config import Settings, get_settings
from storefront.core.money import to_minor_units
from storefront.errors import PaymentSessionError
from storefront.payments.base import PaymentRequest, PaymentSession

_PROVIDER_ERRORS = (BadRequestError, GatewayError, ServerError, requests.RequestException)


class RazorpayGateway:
    provider = "razorpay"

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def _client(self) -> razorpay.Client:
        return razorpay.Client(auth=(self.settings.razorpay_key_id, self.settings.razorpay_key_secret))

    def create_session(self, request: PaymentRequest) -> PaymentSession:
        if not (self.settings.razorpay_key_id and self.settings.razorpay_key_secret):
            raise PaymentSessionError("razorpay is not configured", order_id=request.order_id)
        body = {
            "amount": to_minor_units(request.total),
            "currency": self.settings.razorpay_currency,
            "receipt": request.order_number,
            "notes": {"orderId": request.order_id, "orderNumber": request.order_number, **request.metadata},
        }
        try:
            payload = self._client().order.create(data=body)
        except _PROVIDER_ERRORS as exc:
            raise PaymentSessionError(f"razorpay order creation failed: {exc}", order_id=request.order_id) from exc
        return PaymentSession(
            provider=self.provider,
            reference=str(payload["id"]),
            data={
                "orderId": payload["id"],
                "amount": payload.get("amount", body["amount"]),
                "currency": payload.get("currency", body["currency"]),
                "keyId": self.settings.razorpay_key_id,
            },
        )


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    client = razorpay.Client(auth=("", secret))
    try:
        client.utility.verify_payment_signature(
            {
                "razorpay_order_id": order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature,
            }
        )
    except SignatureVerificationError:
        return False
    return True
