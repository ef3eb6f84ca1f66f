from __future__ import annotations

import hmac
import json
import time
from decimal import Decimal
from hashlib import sha256

from storefront.core.config import get_settings
from storefront.demo import LOAD_BALANCER_ID, STARTUP_BUNDLE_ID, VM_PRO_ID
from storefront.errors import PaymentSessionError

ENTERPRISE_WITH_BACKUPS = {
    "productId": VM_PRO_ID,
    "variantId": "var-vm-ent",
    "quantity": 1,
    "addons": [{"addonId": "addon-backups", "quantity": 1}],
}


def _checkout(client, items=None, method="razorpay", **extra):
    body = {
        "items": items or [ENTERPRISE_WITH_BACKUPS],
        "paymentMethod": method,
        "email": "buyer@example.com",
        **extra,
    }
    return client.post("/checkout", json=body)


def _razorpay_signature(order_ref: str, payment_id: str, secret: str) -> str:
    return hmac.new(secret.encode(), f"{order_ref}|{payment_id}".encode(), sha256).hexdigest()


def test_checkout_prices_from_catalog_and_ignores_client_prices(client, admin_headers):
    tampered = dict(ENTERPRISE_WITH_BACKUPS, unitPrice="0.01", totalPrice="0.01")
    res = _checkout(client, items=[tampered])
    assert res.status_code == 200
    body = res.json()
    assert body["order"]["total"] == "236.49"
    assert body["order"]["orderNumber"].startswith("ORD-")
    assert body["payment"]["amount"] == 23649
    assert body["discount"] is None

    detail = client.get(f"/orders/{body['order']['id']}", headers=admin_headers).json()
    assert detail["status"] == "PENDING"
    assert detail["paymentStatus"] == "PENDING"
    assert detail["subtotal"] == "214.99"
    assert detail["taxAmount"] == "21.50"
    item = detail["items"][0]
    assert item["name"] == "Virtual Machine Pro - Enterprise"
    assert item["sku"] == "VM-PRO-ENT"
    assert item["unitPrice"] == "214.99"
    assert item["addons"] == [{"addonId": "addon-backups", "name": "Managed Backups", "price": "15.00", "quantity": 1}]


def test_checkout_with_percentage_discount(client):
    res = _checkout(client, discountCode="save20")
    assert res.status_code == 200
    body = res.json()
    assert body["discount"] == {"code": "SAVE20", "applied": True, "amount": "43.00", "reason": None}
    assert body["order"]["total"] == "189.19"


def test_quote_reports_unusable_discount_without_failing(client, make_discount):
    code = make_discount(type_="FIXED", value="10", min_purchase=Decimal("1000"))
    res = client.post(
        "/checkout/quote",
        json={"items": [{"bundleId": STARTUP_BUNDLE_ID, "quantity": 2}], "discountCode": code},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["totals"] == {
        "subtotal": "399.98",
        "discountAmount": "0.00",
        "taxAmount": "40.00",
        "shippingAmount": "0.00",
        "total": "439.98",
    }
    assert body["discount"]["applied"] is False
    assert body["discount"]["reason"] == "MinimumPurchaseNotMet"


def test_checkout_rejects_unusable_discount(client, make_discount):
    code = make_discount(type_="FIXED", value="10", min_purchase=Decimal("1000"))
    res = _checkout(client, discountCode=code)
    assert res.status_code == 400
    body = res.json()
    assert body["code"] == "discount_rejected"
    assert body["reason"] == "MinimumPurchaseNotMet"
    assert Decimal(body["details"][0]["requiredMinimum"]) == Decimal("1000")

    res = _checkout(client, discountCode="NOPE-NOT-A-CODE")
    assert res.status_code == 400
    assert res.json()["reason"] == "CodeNotFound"


def test_request_validation_errors_use_uniform_shape(client):
    res = client.post("/checkout", json={"items": [], "paymentMethod": "stripe", "email": "buyer@example.com"})
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid request data"

    res = _checkout(client, items=[{"productId": VM_PRO_ID, "bundleId": STARTUP_BUNDLE_ID, "quantity": 1}])
    assert res.status_code == 400
    assert res.json()["details"]

    res = _checkout(client, email="not-an-email")
    assert res.status_code == 400

    res = _checkout(client, method="paypal")
    assert res.status_code == 400


def test_unknown_catalog_references(client):
    res = _checkout(client, items=[{"productId": "prod-missing", "quantity": 1}])
    assert res.status_code == 400
    assert res.json()["code"] == "entity_not_found"

    res = _checkout(client, items=[{"productId": LOAD_BALANCER_ID, "variantId": "var-vm-ent", "quantity": 1}])
    assert res.status_code == 400
    assert res.json()["code"] == "variant_not_found"


def test_payment_failure_keeps_pending_order_for_retry(client, admin_headers, monkeypatch):
    import storefront.api.routes_checkout as routes_checkout

    class BrokenGateway:
        provider = "stripe"

        def create_session(self, request):
            raise PaymentSessionError("stripe is down")

    with monkeypatch.context() as m:
        m.setattr(routes_checkout, "get_gateway", lambda method: BrokenGateway())
        res = _checkout(client, method="stripe")
    assert res.status_code == 502
    body = res.json()
    assert body["code"] == "payment_session_error"
    order_id = body["orderId"]

    detail = client.get(f"/orders/{order_id}", headers=admin_headers).json()
    assert detail["status"] == "PENDING"
    assert detail["paymentStatus"] == "PENDING"

    retry = client.post(f"/orders/{order_id}/payment-session")
    assert retry.status_code == 200
    assert retry.json()["payment"]["sessionId"].startswith("fake_stripe_")


def test_razorpay_verification_confirms_and_redeems_once(client, admin_headers, make_discount, monkeypatch):
    secret = "rzp_test_secret"
    monkeypatch.setattr(get_settings(), "razorpay_key_secret", secret)
    code = make_discount(type_="PERCENTAGE", value="10", usage_limit=5)

    res = _checkout(client, discountCode=code)
    assert res.status_code == 200
    order_ref = res.json()["payment"]["sessionId"]
    payment = {
        "razorpayOrderId": order_ref,
        "razorpayPaymentId": "pay_123",
        "razorpaySignature": _razorpay_signature(order_ref, "pay_123", secret),
    }

    first = client.post("/payments/razorpay/verify", json=payment)
    assert first.status_code == 200
    assert first.json()["order"]["paymentStatus"] == "PAID"
    assert first.json()["order"]["status"] == "CONFIRMED"
    assert first.json()["discountRedemption"] == "committed"

    again = client.post("/payments/razorpay/verify", json=payment)
    assert again.status_code == 200
    assert again.json()["discountRedemption"] is None

    discounts = client.get("/discounts", headers=admin_headers).json()["discounts"]
    row = next(d for d in discounts if d["code"] == code)
    assert row["usageCount"] == 1


def test_razorpay_verification_resolves_reference_from_before_a_retry(client, admin_headers, monkeypatch):
    secret = "rzp_test_secret"
    monkeypatch.setattr(get_settings(), "razorpay_key_secret", secret)

    placed = _checkout(client).json()
    order_id = placed["order"]["id"]
    first_ref = placed["payment"]["sessionId"]
    retry_ref = client.post(f"/orders/{order_id}/payment-session").json()["payment"]["sessionId"]
    assert retry_ref != first_ref

    res = client.post(
        "/payments/razorpay/verify",
        json={
            "razorpayOrderId": first_ref,
            "razorpayPaymentId": "pay_early",
            "razorpaySignature": _razorpay_signature(first_ref, "pay_early", secret),
        },
    )
    assert res.status_code == 200
    assert res.json()["order"]["id"] == order_id
    detail = client.get(f"/orders/{order_id}", headers=admin_headers).json()
    assert detail["paymentStatus"] == "PAID"
    assert detail["paymentReference"] == "pay_early"


def test_razorpay_verification_rejects_bad_signature(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "razorpay_key_secret", "rzp_test_secret")
    res = client.post(
        "/payments/razorpay/verify",
        json={"razorpayOrderId": "order_x", "razorpayPaymentId": "pay_x", "razorpaySignature": "deadbeef"},
    )
    assert res.status_code == 400


def _stripe_event(client, secret: str, event: dict):
    payload = json.dumps(event).encode()
    ts = int(time.time())
    digest = hmac.new(secret.encode(), f"{ts}.".encode() + payload, sha256).hexdigest()
    return client.post(
        "/payments/stripe/webhook",
        content=payload,
        headers={"stripe-signature": f"t={ts},v1={digest}", "content-type": "application/json"},
    )


def test_stripe_webhook_confirms_and_fails_orders(client, admin_headers, monkeypatch):
    secret = "whsec_test"
    monkeypatch.setattr(get_settings(), "stripe_webhook_secret", secret)

    paid = _checkout(client, method="stripe").json()["order"]["id"]
    res = _stripe_event(
        client,
        secret,
        {
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_paid", "payment_intent": "pi_1", "metadata": {"orderId": paid}}},
        },
    )
    assert res.status_code == 200
    assert res.json()["handled"] is True
    detail = client.get(f"/orders/{paid}", headers=admin_headers).json()
    assert detail["paymentStatus"] == "PAID"
    assert detail["paymentReference"] == "pi_1"

    expired = _checkout(client, method="stripe").json()
    session_id = expired["payment"]["sessionId"]
    res = _stripe_event(client, secret, {"type": "checkout.session.expired", "data": {"object": {"id": session_id}}})
    assert res.json()["handled"] is True
    detail = client.get(f"/orders/{expired['order']['id']}", headers=admin_headers).json()
    assert detail["paymentStatus"] == "FAILED"


def test_stripe_webhook_rejects_bad_signature(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "stripe_webhook_secret", "whsec_test")
    res = client.post(
        "/payments/stripe/webhook",
        content=b"{}",
        headers={"stripe-signature": "t=1,v1=abc"},
    )
    assert res.status_code == 400


def test_stripe_webhook_rejects_signed_non_object_body(client, monkeypatch):
    secret = "whsec_test"
    monkeypatch.setattr(get_settings(), "stripe_webhook_secret", secret)
    payload = b'[{"type": "checkout.session.completed"}]'
    ts = int(time.time())
    digest = hmac.new(secret.encode(), f"{ts}.".encode() + payload, sha256).hexdigest()
    res = client.post(
        "/payments/stripe/webhook",
        content=payload,
        headers={"stripe-signature": f"t={ts},v1={digest}", "content-type": "application/json"},
    )
    assert res.status_code == 400
    assert res.json()["code"] == "webhook_rejected"


def test_validate_discount_endpoint(client):
    res = client.post("/discounts/validate", json={"code": "flat50", "subtotal": "30"})
    assert res.status_code == 200
    assert res.json() == {"code": "FLAT50", "usable": True, "amount": "30.00", "reason": None, "message": None}

    res = client.post("/discounts/validate", json={"code": "missing", "subtotal": "30"})
    assert res.json()["usable"] is False
    assert res.json()["reason"] == "CodeNotFound"
