from __future__ import annotations

import pytest

from storefront.cart import CheckoutFlow, CheckoutStatus, InvalidTransition


def test_happy_path_reaches_redirect():
    flow = CheckoutFlow().submit()
    assert flow.status is CheckoutStatus.SUBMITTING
    assert flow.cart_locked is True
    done = flow.succeed({"url": "https://pay.example/session"})
    assert done.status is CheckoutStatus.REDIRECTING
    assert done.redirect == {"url": "https://pay.example/session"}
    assert done.cart_locked is False


def test_failure_surfaces_error_then_returns_to_idle():
    failed = CheckoutFlow().submit().fail("Discount code has expired")
    assert failed.status is CheckoutStatus.FAILED
    idle = failed.acknowledge()
    assert idle.status is CheckoutStatus.IDLE
    assert idle.error == "Discount code has expired"
    assert idle.submit().error is None


def test_illegal_transitions():
    with pytest.raises(InvalidTransition):
        CheckoutFlow().succeed({})
    with pytest.raises(InvalidTransition):
        CheckoutFlow().submit().submit()
    with pytest.raises(InvalidTransition):
        CheckoutFlow().submit().succeed({}).fail("late")
