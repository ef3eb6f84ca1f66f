from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from storefront.core.money import ZERO, clamp, quantize_money, to_money
from storefront.pricing.models import OrderTotals

DEFAULT_TAX_RATE = Decimal("0.10")


def compute_totals(
    line_totals: Iterable[Decimal],
    discount_amount: Decimal = ZERO,
    tax_rate: Decimal = DEFAULT_TAX_RATE,
    shipping_amount: Decimal = ZERO,
) -> OrderTotals:
    """Assemble order totals from already-multiplied line totals.

    Shared by the checkout engine and the cart mirror so both sides round the
    same way. The discount is clamped into ``[0, subtotal]`` here as well, so an
    advisory amount held by the cart can never push the total negative.
    """
    subtotal = quantize_money(sum((to_money(v) for v in line_totals), ZERO))
    discount = clamp(quantize_money(discount_amount), ZERO, subtotal)
    tax = quantize_money((subtotal - discount) * to_money(tax_rate))
    shipping = quantize_money(shipping_amount)
    total = subtotal - discount + tax + shipping
    return OrderTotals(
        subtotal=subtotal,
        discount_amount=discount,
        tax_amount=tax,
        shipping_amount=shipping,
        total=quantize_money(total),
    )
