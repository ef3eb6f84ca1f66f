from __future__ import annotations

from storefront.core.config import Settings, get_settings
from storefront.payments.base import PaymentGateway, PaymentLine, PaymentRequest, PaymentSession
from storefront.payments.fake import FakeGateway
from storefront.payments.razorpay import RazorpayGateway, verify_payment_signature
from storefront.payments.stripe import StripeGateway, parse_webhook_event

PAYMENT_METHODS = ("stripe", "razorpay")

_fake_gateways: dict[str, FakeGateway] = {}


def get_gateway(method: str, settings: Settings | None = None) -> PaymentGateway:
    settings = settings or get_settings()
    if method not in PAYMENT_METHODS:
        raise ValueError(f"unsupported payment method: {method}")
    if settings.payment_backend == "fake":
        return _fake_gateways.setdefault(method, FakeGateway(method))
    if method == "stripe":
        return StripeGateway(settings)
    return RazorpayGateway(settings)


def reset_fake_gateways() -> None:
    _fake_gateways.clear()


__all__ = [
    "FakeGateway",
    "PAYMENT_METHODS",
    "PaymentGateway",
    "PaymentLine",
    "PaymentRequest",
    "PaymentSession",
    "RazorpayGateway",
    "StripeGateway",
    "get_gateway",
    "parse_webhook_event",
    "reset_fake_gateways",
    "verify_payment_signature",
]
