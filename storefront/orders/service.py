from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from storefront.core.clock import now_utc
from storefront.errors import OrderStateError, PaymentSessionError
from storefront.payments import PaymentGateway, PaymentLine, PaymentRequest, PaymentSession
from storefront.pricing.discounts import DiscountLedger, DiscountValidator, RedemptionOutcome
from storefront.pricing.catalog import SqlCatalog
from storefront.pricing.models import OrderQuote
from storefront.persistence.models import OrderItemAddonModel, OrderItemModel, OrderModel, PaymentSessionModel

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED", "REFUNDED")
PAYMENT_STATUSES = ("PENDING", "PAID", "FAILED", "REFUNDED", "PARTIALLY_REFUNDED")

_BASE36 = string.digits + string.ascii_uppercase


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_order_number() -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(4))
    return f"ORD-{_base36(int(time.time() * 1000))}-{suffix}"


@dataclass(frozen=True)
class CustomerDetails:
    email: str
    payment_method: str
    currency: str
    phone: str | None = None
    shipping_address: dict[str, Any] | None = None
    notes: str | None = None


def create_order(session: Session, quote: OrderQuote, customer: CustomerDetails) -> OrderModel:
    """Persist the quote as a pending order. Header, items and addons go in one flush."""
    now = now_utc()
    totals = quote.totals
    order = OrderModel(
        order_number=generate_order_number(),
        email=customer.email,
        phone=customer.phone,
        status="PENDING",
        payment_status="PENDING",
        payment_method=customer.payment_method,
        subtotal=totals.subtotal,
        discount_amount=totals.discount_amount,
        tax_amount=totals.tax_amount,
        shipping_amount=totals.shipping_amount,
        total=totals.total,
        currency=customer.currency,
        discount_id=quote.discount_id,
        discount_code=quote.discount.code if quote.discount and quote.discount.applied else None,
        shipping_address=customer.shipping_address,
        notes=customer.notes,
        created_at=now,
        updated_at=now,
    )
    for position, line in enumerate(quote.items):
        item = OrderItemModel(
            position=position,
            product_id=line.product_id,
            variant_id=line.variant_id,
            bundle_id=line.bundle_id,
            name=line.name,
            sku=line.sku,
            quantity=line.quantity,
            unit_price=line.unit_price,
            total_price=line.total_price,
            configuration=dict(line.configuration) if line.configuration else None,
        )
        item.addons = [
            OrderItemAddonModel(addon_id=a.addon_id, name=a.name, price=a.price, quantity=a.quantity)
            for a in line.addons
        ]
        order.items.append(item)
    session.add(order)
    session.flush()
    logger.info("order created: order_number=%s total=%s", order.order_number, order.total)
    return order


def payment_request_for(order: OrderModel) -> PaymentRequest:
    return PaymentRequest(
        order_id=order.id,
        order_number=order.order_number,
        email=order.email,
        total=order.total,
        tax_amount=order.tax_amount,
        discount_amount=order.discount_amount,
        shipping_amount=order.shipping_amount,
        lines=tuple(PaymentLine(name=i.name, unit_amount=i.unit_price, quantity=i.quantity) for i in order.items),
    )


def start_payment(session: Session, order: OrderModel, gateway: PaymentGateway) -> PaymentSession:
    if order.payment_status not in ("PENDING", "FAILED"):
        raise OrderStateError(
            f"order {order.order_number} is not awaiting payment (payment_status={order.payment_status})"
        )
    try:
        payment = gateway.create_session(payment_request_for(order))
    except PaymentSessionError as exc:
        logger.warning("payment session failed: order_number=%s provider=%s error=%s", order.order_number, gateway.provider, exc)
        if exc.order_id is None:
            exc.order_id = order.id
        raise
    now = now_utc()
    session.add(
        PaymentSessionModel(order_id=order.id, provider=payment.provider, reference=payment.reference, created_at=now)
    )
    order.payment_session_ref = payment.reference
    order.payment_status = "PENDING"
    order.updated_at = now
    session.flush()
    return payment


def confirm_payment(
    session: Session,
    order: OrderModel,
    payment_reference: str,
    now: datetime | None = None,
) -> RedemptionOutcome | None:
    """Mark the order paid and commit its discount redemption.

    Safe to call repeatedly for the same order: an already paid order is left
    untouched and the redemption is recorded at most once.
    """
    now = now or now_utc()
    if order.payment_status == "PAID":
        return None
    order.payment_status = "PAID"
    order.status = "CONFIRMED"
    order.payment_reference = payment_reference
    order.updated_at = now
    session.flush()

    outcome = None
    if order.discount_id:
        ledger = DiscountLedger(session, DiscountValidator(SqlCatalog(session)))
        outcome = ledger.commit(order.discount_id, order.id, now)
    logger.info("payment confirmed: order_number=%s reference=%s", order.order_number, payment_reference)
    return outcome


def mark_payment_failed(session: Session, order: OrderModel, now: datetime | None = None) -> None:
    if order.payment_status == "PAID":
        return
    order.payment_status = "FAILED"
    order.updated_at = now or now_utc()
    session.flush()


def get_order(session: Session, order_id: str) -> OrderModel | None:
    stmt = (
        select(OrderModel)
        .where(OrderModel.id == order_id)
        .options(selectinload(OrderModel.items).selectinload(OrderItemModel.addons))
    )
    return session.scalar(stmt)


def list_orders(
    session: Session,
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[OrderModel], int]:
    stmt = select(OrderModel)
    count_stmt = select(func.count()).select_from(OrderModel)
    if status and status != "all":
        stmt = stmt.where(OrderModel.status == status)
        count_stmt = count_stmt.where(OrderModel.status == status)
    stmt = (
        stmt.options(selectinload(OrderModel.items).selectinload(OrderItemModel.addons))
        .order_by(OrderModel.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = list(session.scalars(stmt).all())
    return rows, int(session.scalar(count_stmt) or 0)


def order_to_dict(order: OrderModel) -> dict[str, Any]:
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "email": order.email,
        "phone": order.phone,
        "status": order.status,
        "paymentStatus": order.payment_status,
        "paymentMethod": order.payment_method,
        "paymentReference": order.payment_reference,
        "subtotal": str(order.subtotal),
        "discountAmount": str(order.discount_amount),
        "taxAmount": str(order.tax_amount),
        "shippingAmount": str(order.shipping_amount),
        "total": str(order.total),
        "currency": order.currency,
        "discountCode": order.discount_code,
        "shippingAddress": order.shipping_address,
        "notes": order.notes,
        "createdAt": order.created_at.isoformat(),
        "items": [
            {
                "id": item.id,
                "productId": item.product_id,
                "variantId": item.variant_id,
                "bundleId": item.bundle_id,
                "name": item.name,
                "sku": item.sku,
                "quantity": item.quantity,
                "unitPrice": str(item.unit_price),
                "totalPrice": str(item.total_price),
                "configuration": item.configuration,
                "addons": [
                    {"addonId": a.addon_id, "name": a.name, "price": str(a.price), "quantity": a.quantity}
                    for a in item.addons
                ],
            }
            for item in order.items
        ],
    }


def find_order_by_payment_session(session: Session, reference: str) -> OrderModel | None:
    """Resolve any provider reference ever issued for an order, not only the latest one."""
    stmt = (
        select(OrderModel)
        .join(PaymentSessionModel, PaymentSessionModel.order_id == OrderModel.id)
        .where(PaymentSessionModel.reference == reference)
    )
    return session.scalar(stmt)
