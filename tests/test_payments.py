from __future__ import annotations

import hmac
import json
import time
from decimal import Decimal
from hashlib import sha256
from types import SimpleNamespace

import pytest
import stripe
from razorpay.errors import BadRequestError

from storefront.core.config import Settings
from storefront.core.money import to_minor_units
from storefront.errors import PaymentSessionError, WebhookRejected
from storefront.orders import payment_request_for
from storefront.payments import (
    FakeGateway,
    PaymentLine,
    PaymentRequest,
    RazorpayGateway,
    StripeGateway,
    parse_webhook_event,
    verify_payment_signature,
)
from storefront.persistence.models import OrderItemModel, OrderModel


def _request(discount: str = "0", shipping: str = "0") -> PaymentRequest:
    return PaymentRequest(
        order_id="order-1",
        order_number="ORD-ABC-1234",
        email="buyer@example.com",
        total=Decimal("181.49") - Decimal(discount) + Decimal(shipping),
        tax_amount=Decimal("16.50"),
        discount_amount=Decimal(discount),
        shipping_amount=Decimal(shipping),
        lines=(PaymentLine(name="Virtual Machine Pro", unit_amount=Decimal("164.99"), quantity=1),),
    )


def _settings(**overrides) -> Settings:
    values = {
        "stripe_secret_key": "sk_test_123",
        "razorpay_key_id": "rzp_test",
        "razorpay_key_secret": "rzp_secret",
        "app_url": "https://shop.example",
    }
    values.update(overrides)
    return Settings(**values)


def _charged(params: dict) -> int:
    return sum(line["price_data"]["unit_amount"] * line["quantity"] for line in params["line_items"])


def test_stripe_line_items_include_tax_in_minor_units():
    params = StripeGateway(_settings()).build_session_params(_request())
    lines = params["line_items"]
    assert [line["price_data"]["unit_amount"] for line in lines] == [16499, 1650]
    assert lines[1]["price_data"]["product_data"]["name"] == "Tax"
    assert params["metadata"]["orderId"] == "order-1"
    assert params["success_url"] == "https://shop.example/checkout/success?order=order-1"


def test_stripe_charges_order_total_including_shipping():
    request = _request(shipping="5.00")
    params = StripeGateway(_settings()).build_session_params(request)
    assert params["line_items"][-1]["price_data"]["product_data"]["name"] == "Shipping"
    assert _charged(params) == to_minor_units(request.total) == 18649

    discounted = _request(discount="20.00", shipping="5.00")
    params = StripeGateway(_settings()).build_session_params(discounted)
    assert len(params["line_items"]) == 1
    assert _charged(params) == to_minor_units(discounted.total) == 16649


def test_payment_request_carries_order_shipping():
    order = OrderModel(
        id="order-9",
        order_number="ORD-SHIP-0001",
        email="buyer@example.com",
        subtotal=Decimal("100.00"),
        discount_amount=Decimal("0.00"),
        tax_amount=Decimal("10.00"),
        shipping_amount=Decimal("5.00"),
        total=Decimal("115.00"),
    )
    order.items = [OrderItemModel(name="Load Balancer Enterprise", unit_price=Decimal("100.00"), quantity=1)]
    request = payment_request_for(order)
    assert request.shipping_amount == Decimal("5.00")
    assert _charged(StripeGateway(_settings()).build_session_params(request)) == 11500


def test_stripe_create_session(monkeypatch):
    seen = {}

    def fake_create(**kwargs):
        seen.update(kwargs)
        return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/cs_test_1")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
    session = StripeGateway(_settings()).create_session(_request())
    assert seen["api_key"] == "sk_test_123"
    assert seen["customer_email"] == "buyer@example.com"
    assert seen["mode"] == "payment"
    assert session.reference == "cs_test_1"
    assert session.data == {"sessionId": "cs_test_1", "url": "https://checkout.stripe.com/c/cs_test_1"}


def test_stripe_failure_becomes_payment_session_error(monkeypatch):
    def boom(**kwargs):
        raise stripe.APIConnectionError("connection refused")

    monkeypatch.setattr(stripe.checkout.Session, "create", boom)
    with pytest.raises(PaymentSessionError) as exc_info:
        StripeGateway(_settings()).create_session(_request())
    assert exc_info.value.order_id == "order-1"


def test_unconfigured_providers_raise():
    with pytest.raises(PaymentSessionError):
        StripeGateway(_settings(stripe_secret_key=None)).create_session(_request())
    with pytest.raises(PaymentSessionError):
        RazorpayGateway(_settings(razorpay_key_secret=None)).create_session(_request())


def _razorpay_client(create):
    return SimpleNamespace(order=SimpleNamespace(create=create))


def test_razorpay_create_order(monkeypatch):
    gateway = RazorpayGateway(_settings())
    seen = {}

    def create(data):
        seen["body"] = data
        return {"id": "order_rzp_1", "amount": data["amount"], "currency": "INR"}

    monkeypatch.setattr(gateway, "_client", lambda: _razorpay_client(create))
    session = gateway.create_session(_request())
    assert seen["body"]["amount"] == 18149
    assert seen["body"]["receipt"] == "ORD-ABC-1234"
    assert seen["body"]["notes"]["orderId"] == "order-1"
    assert session.data["orderId"] == "order_rzp_1"
    assert session.data["keyId"] == "rzp_test"


def test_razorpay_failure_becomes_payment_session_error(monkeypatch):
    gateway = RazorpayGateway(_settings())

    def create(data):
        raise BadRequestError("amount exceeds maximum amount allowed")

    monkeypatch.setattr(gateway, "_client", lambda: _razorpay_client(create))
    with pytest.raises(PaymentSessionError) as exc_info:
        gateway.create_session(_request())
    assert exc_info.value.order_id == "order-1"


def test_razorpay_signature():
    signature = hmac.new(b"rzp_secret", b"order_1|pay_1", sha256).hexdigest()
    assert verify_payment_signature("order_1", "pay_1", signature, "rzp_secret") is True
    assert verify_payment_signature("order_1", "pay_2", signature, "rzp_secret") is False


def _signed(payload: bytes, secret: str, ts: int | None = None) -> str:
    ts = int(time.time()) if ts is None else ts
    digest = hmac.new(secret.encode(), f"{ts}.".encode() + payload, sha256).hexdigest()
    return f"t={ts},v1={digest}"


def test_stripe_webhook_event_parsing():
    payload = json.dumps({"type": "checkout.session.completed", "data": {"object": {"id": "cs_1"}}}).encode()
    event = parse_webhook_event(payload, _signed(payload, "whsec"), "whsec")
    assert event["type"] == "checkout.session.completed"

    with pytest.raises(WebhookRejected):
        parse_webhook_event(payload, _signed(payload, "whsec", ts=int(time.time()) - 1000), "whsec")
    with pytest.raises(WebhookRejected):
        parse_webhook_event(payload + b" ", _signed(payload, "whsec"), "whsec")
    with pytest.raises(WebhookRejected):
        parse_webhook_event(payload, "garbage", "whsec")


def test_stripe_webhook_rejects_signed_non_object_body():
    payload = b'["checkout.session.completed"]'
    with pytest.raises(WebhookRejected) as exc_info:
        parse_webhook_event(payload, _signed(payload, "whsec"), "whsec")
    assert exc_info.value.status_code == 400


def test_fake_gateway_keeps_a_bounded_history():
    gateway = FakeGateway("stripe", max_recorded=3)
    references = {gateway.create_session(_request()).reference for _ in range(5)}
    assert len(gateway.requests) == 3
    assert len(references) == 5
