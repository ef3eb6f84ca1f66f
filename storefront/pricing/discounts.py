from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session

from storefront.core.clock import now_utc
from storefront.core.money import ZERO, clamp, quantize_money
from storefront.pricing.catalog import CatalogLookup, DiscountSnapshot
from storefront.persistence.models import DiscountModel, DiscountRedemptionModel

logger = logging.getLogger(__name__)

PERCENTAGE = "PERCENTAGE"
FIXED = "FIXED"


class RejectionReason(str, Enum):
    CODE_NOT_FOUND = "CodeNotFound"
    NOT_YET_STARTED = "NotYetStarted"
    EXPIRED = "Expired"
    USAGE_LIMIT_REACHED = "UsageLimitReached"
    MINIMUM_PURCHASE_NOT_MET = "MinimumPurchaseNotMet"


REJECTION_MESSAGES = {
    RejectionReason.CODE_NOT_FOUND: "Discount code not found",
    RejectionReason.NOT_YET_STARTED: "Discount code is not active yet",
    RejectionReason.EXPIRED: "Discount code has expired",
    RejectionReason.USAGE_LIMIT_REACHED: "Discount code usage limit reached",
    RejectionReason.MINIMUM_PURCHASE_NOT_MET: "Minimum purchase not met for this discount",
}


@dataclass(frozen=True)
class DiscountDecision:
    code: str
    usable: bool
    amount: Decimal = ZERO
    discount_id: str | None = None
    reason: RejectionReason | None = None
    required_minimum: Decimal | None = None

    @property
    def message(self) -> str | None:
        if self.reason is None:
            return None
        if self.reason is RejectionReason.MINIMUM_PURCHASE_NOT_MET and self.required_minimum is not None:
            return f"Minimum purchase of {self.required_minimum} required for this discount"
        return REJECTION_MESSAGES[self.reason]


class RedemptionOutcome(str, Enum):
    COMMITTED = "committed"
    ALREADY_COMMITTED = "already_committed"
    LIMIT_REACHED = "limit_reached"


def normalize_code(code: str) -> str:
    return code.strip().upper()


def discount_amount_for(discount: DiscountSnapshot, subtotal: Decimal) -> Decimal:
    if discount.type == PERCENTAGE:
        raw = quantize_money(subtotal * discount.value / Decimal(100))
    else:
        raw = quantize_money(discount.value)
    if discount.max_discount is not None and raw > discount.max_discount:
        raw = quantize_money(discount.max_discount)
    return clamp(raw, ZERO, subtotal)


class DiscountValidator:
    def __init__(self, catalog: CatalogLookup):
        self.catalog = catalog

    def _reject(self, code: str, reason: RejectionReason, **extra) -> DiscountDecision:
        return DiscountDecision(code=code, usable=False, reason=reason, **extra)

    def validate(self, code: str, subtotal: Decimal, now: datetime | None = None) -> DiscountDecision:
        now = now or now_utc()
        normalized = normalize_code(code)
        discount = self.catalog.find_discount(normalized)
        if discount is None or not discount.is_active:
            return self._reject(normalized, RejectionReason.CODE_NOT_FOUND)
        if discount.starts_at is not None and now < discount.starts_at:
            return self._reject(normalized, RejectionReason.NOT_YET_STARTED)
        if discount.expires_at is not None and now > discount.expires_at:
            return self._reject(normalized, RejectionReason.EXPIRED)
        if discount.usage_limit is not None and discount.usage_count >= discount.usage_limit:
            return self._reject(normalized, RejectionReason.USAGE_LIMIT_REACHED)
        if discount.min_purchase is not None and subtotal < discount.min_purchase:
            return self._reject(
                normalized,
                RejectionReason.MINIMUM_PURCHASE_NOT_MET,
                required_minimum=discount.min_purchase,
            )
        return DiscountDecision(
            code=normalized,
            usable=True,
            amount=discount_amount_for(discount, subtotal),
            discount_id=discount.id,
        )


class DiscountLedger:
    """Two-phase discount usage: ``reserve`` at pricing time, ``commit`` once paid.

    ``reserve`` never mutates. ``commit`` increments ``usage_count`` with a single
    guarded UPDATE so concurrent confirmations cannot push a code past its
    limit, and records the order id so a replayed confirmation is a no-op.
    """

    def __init__(self, session: Session, validator: DiscountValidator):
        self.session = session
        self.validator = validator

    def reserve(self, code: str, subtotal: Decimal, now: datetime | None = None) -> DiscountDecision:
        return self.validator.validate(code, subtotal, now)

    def commit(self, discount_id: str, order_id: str, now: datetime | None = None) -> RedemptionOutcome:
        existing = self.session.scalar(
            select(DiscountRedemptionModel.id).where(DiscountRedemptionModel.order_id == order_id)
        )
        if existing is not None:
            return RedemptionOutcome.ALREADY_COMMITTED

        result = self.session.execute(
            update(DiscountModel)
            .where(DiscountModel.id == discount_id)
            .where(
                or_(
                    DiscountModel.usage_limit.is_(None),
                    DiscountModel.usage_count < DiscountModel.usage_limit,
                )
            )
            .values(usage_count=DiscountModel.usage_count + 1)
        )
        if result.rowcount == 0:
            logger.warning("discount usage limit reached at commit: discount_id=%s order_id=%s", discount_id, order_id)
            return RedemptionOutcome.LIMIT_REACHED

        self.session.add(
            DiscountRedemptionModel(discount_id=discount_id, order_id=order_id, redeemed_at=now or now_utc())
        )
        self.session.flush()
        logger.info("discount redeemed: discount_id=%s order_id=%s", discount_id, order_id)
        return RedemptionOutcome.COMMITTED
