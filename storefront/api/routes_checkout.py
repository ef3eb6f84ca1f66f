from __future__ import annotations

import logging
from dataclasses import replace
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import EmailStr, Field
from sqlalchemy.orm import Session

from storefront.core.config import get_settings
from storefront.orders import CustomerDetails, create_order, get_order, start_payment
from storefront.payments import get_gateway
from storefront.persistence.db import get_session
from storefront.pricing import LineItemRequest, PricingEngine, PricingPolicy, SqlCatalog
from storefront.pricing.models import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["checkout"])


class ShippingAddress(CamelModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    company: str | None = None
    address1: str = Field(min_length=1)
    address2: str | None = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    country: str = Field(min_length=1)
    phone: str | None = None


class QuoteRequest(CamelModel):
    items: list[LineItemRequest] = Field(min_length=1)
    discount_code: str | None = None


class CheckoutRequest(QuoteRequest):
    payment_method: Literal["stripe", "razorpay"]
    email: EmailStr
    phone: str | None = None
    shipping_address: ShippingAddress | None = None
    notes: str | None = None


def _engine(session: Session, **overrides) -> PricingEngine:
    policy = PricingPolicy.from_settings(get_settings())
    if overrides:
        policy = replace(policy, **overrides)
    return PricingEngine(SqlCatalog(session), policy)


def _currency_for(method: str) -> str:
    settings = get_settings()
    return settings.stripe_currency if method == "stripe" else settings.razorpay_currency


@router.post("/checkout/quote")
def quote_checkout(payload: QuoteRequest, session: Session = Depends(get_session)):
    # Preview only: report an unusable code instead of failing the cart view.
    quote = _engine(session, reject_unusable_discount=False).compute_order(payload.items, payload.discount_code)
    return quote.to_dict()


@router.post("/checkout")
def create_checkout(payload: CheckoutRequest, session: Session = Depends(get_session)):
    quote = _engine(session).compute_order(payload.items, payload.discount_code)
    order = create_order(
        session,
        quote,
        CustomerDetails(
            email=str(payload.email),
            payment_method=payload.payment_method,
            currency=_currency_for(payload.payment_method),
            phone=payload.phone,
            shipping_address=payload.shipping_address.model_dump(by_alias=True) if payload.shipping_address else None,
            notes=payload.notes,
        ),
    )
    # The pending order must survive a payment provider failure so payment can be retried against it.
    session.commit()

    payment = start_payment(session, order, get_gateway(payload.payment_method))
    return {
        "order": {"id": order.id, "orderNumber": order.order_number, "total": str(order.total)},
        "payment": payment.data,
        "discount": quote.discount.to_dict() if quote.discount else None,
    }


@router.post("/orders/{order_id}/payment-session")
def retry_payment_session(order_id: str, session: Session = Depends(get_session)):
    order = get_order(session, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="order not found")
    payment = start_payment(session, order, get_gateway(order.payment_method))
    return {
        "order": {"id": order.id, "orderNumber": order.order_number, "total": str(order.total)},
        "payment": payment.data,
    }
