from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Sequence

from storefront.core.clock import now_utc
from storefront.core.money import ZERO, quantize_money
from storefront.errors import (
    CheckoutValidationError,
    DiscountRejected,
    EntityNotFound,
    EntityUnavailable,
    ModifierNotFound,
    VariantNotFound,
)
from storefront.pricing.catalog import CatalogLookup, ProductSnapshot
from storefront.pricing.discounts import DiscountValidator
from storefront.pricing.models import (
    DiscountOutcome,
    LineItemRequest,
    OrderQuote,
    PricedAddon,
    PricedLineItem,
)
from storefront.pricing.totals import DEFAULT_TAX_RATE, compute_totals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricingPolicy:
    tax_rate: Decimal = DEFAULT_TAX_RATE
    shipping_amount: Decimal = ZERO
    ignore_unknown_modifiers: bool = True
    reject_unusable_discount: bool = True

    @classmethod
    def from_settings(cls, settings) -> "PricingPolicy":
        return cls(
            tax_rate=settings.tax_rate,
            shipping_amount=settings.shipping_amount,
            ignore_unknown_modifiers=settings.ignore_unknown_modifiers,
            reject_unusable_discount=settings.discount_rejection_policy == "reject",
        )


class PricingEngine:
    """Prices a checkout from live catalog data, ignoring anything the client claimed."""

    def __init__(
        self,
        catalog: CatalogLookup,
        policy: PricingPolicy | None = None,
        validator: DiscountValidator | None = None,
    ):
        self.catalog = catalog
        self.policy = policy or PricingPolicy()
        self.validator = validator or DiscountValidator(catalog)

    def compute_order(
        self,
        items: Sequence[LineItemRequest],
        discount_code: str | None = None,
        now: datetime | None = None,
    ) -> OrderQuote:
        if not items:
            raise CheckoutValidationError("at least one item is required")
        now = now or now_utc()

        priced = tuple(self.price_item(item, now) for item in items)
        line_totals = [item.total_price for item in priced]
        subtotal = quantize_money(sum(line_totals, ZERO))

        discount = None
        discount_amount = ZERO
        if discount_code and discount_code.strip():
            decision = self.validator.validate(discount_code, subtotal, now)
            if not decision.usable:
                logger.info("discount rejected: code=%s reason=%s", decision.code, decision.reason.value)
                if self.policy.reject_unusable_discount:
                    details = []
                    if decision.required_minimum is not None:
                        details.append({"requiredMinimum": str(decision.required_minimum)})
                    raise DiscountRejected(decision.reason.value, decision.message, details)
                discount = DiscountOutcome(
                    code=decision.code, applied=False, amount=ZERO, reason=decision.reason.value
                )
            else:
                discount_amount = decision.amount
                discount = DiscountOutcome(
                    code=decision.code,
                    applied=True,
                    amount=decision.amount,
                    discount_id=decision.discount_id,
                )

        totals = compute_totals(
            line_totals,
            discount_amount=discount_amount,
            tax_rate=self.policy.tax_rate,
            shipping_amount=self.policy.shipping_amount,
        )
        return OrderQuote(items=priced, totals=totals, discount=discount)

    def price_item(self, item: LineItemRequest, now: datetime) -> PricedLineItem:
        if item.quantity < 1:
            raise CheckoutValidationError(f"quantity must be at least 1, got {item.quantity}")
        if item.product_id:
            return self._price_product(item)
        if item.bundle_id:
            return self._price_bundle(item, now)
        raise CheckoutValidationError("exactly one of productId or bundleId is required")

    def _price_product(self, item: LineItemRequest) -> PricedLineItem:
        product = self.catalog.get_product(item.product_id)
        if product is None:
            raise EntityNotFound(f"Product not found: {item.product_id}")
        if not product.is_purchasable:
            raise EntityUnavailable(f"Product unavailable: {item.product_id}")

        name = product.name
        sku = product.sku or ""
        unit_price = product.base_price
        if item.variant_id:
            variant = product.variant(item.variant_id)
            if variant is None:
                raise VariantNotFound(f"Variant not found: {item.variant_id}")
            if not variant.is_active:
                raise EntityUnavailable(f"Variant unavailable: {item.variant_id}")
            unit_price = variant.price
            name = f"{product.name} - {variant.name}"
            sku = variant.sku or product.sku or ""

        addons = self._resolve_addons(product, item)
        unit_price += sum((addon.line_total for addon in addons), ZERO)
        unit_price += self._config_modifiers(product, item)
        unit_price = quantize_money(unit_price)

        configuration = {c.config_id: c.value for c in item.configs} if item.configs else None
        return PricedLineItem(
            name=name,
            sku=sku,
            unit_price=unit_price,
            quantity=item.quantity,
            total_price=quantize_money(unit_price * item.quantity),
            product_id=product.id,
            variant_id=item.variant_id,
            configuration=configuration,
            addons=addons,
        )

    def _resolve_addons(self, product: ProductSnapshot, item: LineItemRequest) -> tuple[PricedAddon, ...]:
        resolved = []
        for selection in item.addons:
            addon = product.addon(selection.addon_id)
            if addon is None:
                self._unknown_modifier(f"Addon not found on product {product.id}: {selection.addon_id}")
                continue
            resolved.append(
                PricedAddon(addon_id=addon.id, name=addon.name, price=addon.price, quantity=selection.quantity)
            )
        return tuple(resolved)

    def _config_modifiers(self, product: ProductSnapshot, item: LineItemRequest) -> Decimal:
        total = ZERO
        for selection in item.configs:
            config = product.config(selection.config_id)
            option = config.option_for(selection.value) if config is not None else None
            if option is None:
                self._unknown_modifier(
                    f"Config option not found on product {product.id}: {selection.config_id}={selection.value}"
                )
                continue
            total += option.price_modifier
        return total

    def _unknown_modifier(self, message: str) -> None:
        if not self.policy.ignore_unknown_modifiers:
            raise ModifierNotFound(message)
        logger.debug("ignoring stale selection: %s", message)

    def _price_bundle(self, item: LineItemRequest, now: datetime) -> PricedLineItem:
        bundle = self.catalog.get_bundle(item.bundle_id)
        if bundle is None:
            raise EntityNotFound(f"Bundle not found: {item.bundle_id}")
        if not bundle.is_purchasable(now):
            raise EntityUnavailable(f"Bundle unavailable: {item.bundle_id}")
        unit_price = quantize_money(bundle.price)
        return PricedLineItem(
            name=bundle.name,
            sku="",
            unit_price=unit_price,
            quantity=item.quantity,
            total_price=quantize_money(unit_price * item.quantity),
            bundle_id=bundle.id,
        )
