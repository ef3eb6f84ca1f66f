from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class AddonSelection(CamelModel):
    addon_id: str
    quantity: int = Field(default=1, ge=1)


class ConfigSelection(CamelModel):
    config_id: str
    value: str


class LineItemRequest(CamelModel):
    """One cart entry as submitted at checkout. Prices are never accepted from the client."""

    product_id: str | None = None
    variant_id: str | None = None
    bundle_id: str | None = None
    quantity: int = Field(ge=1)
    addons: list[AddonSelection] = Field(default_factory=list)
    configs: list[ConfigSelection] = Field(default_factory=list)

    @model_validator(mode="after")
    def _exactly_one_reference(self) -> "LineItemRequest":
        if bool(self.product_id) == bool(self.bundle_id):
            raise ValueError("exactly one of productId or bundleId is required")
        if self.bundle_id and (self.variant_id or self.addons or self.configs):
            raise ValueError("bundles do not accept variant, addon or config selections")
        return self

    @property
    def kind(self) -> Literal["product", "bundle"]:
        return "product" if self.product_id else "bundle"


@dataclass(frozen=True)
class PricedAddon:
    addon_id: str
    name: str
    price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class PricedLineItem:
    name: str
    sku: str
    unit_price: Decimal
    quantity: int
    total_price: Decimal
    product_id: str | None = None
    variant_id: str | None = None
    bundle_id: str | None = None
    configuration: dict[str, str] | None = None
    addons: tuple[PricedAddon, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "sku": self.sku,
            "productId": self.product_id,
            "variantId": self.variant_id,
            "bundleId": self.bundle_id,
            "quantity": self.quantity,
            "unitPrice": str(self.unit_price),
            "totalPrice": str(self.total_price),
            "configuration": dict(self.configuration) if self.configuration else None,
            "addons": [
                {"addonId": a.addon_id, "name": a.name, "price": str(a.price), "quantity": a.quantity}
                for a in self.addons
            ],
        }


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total: Decimal

    def to_dict(self) -> dict[str, str]:
        return {
            "subtotal": str(self.subtotal),
            "discountAmount": str(self.discount_amount),
            "taxAmount": str(self.tax_amount),
            "shippingAmount": str(self.shipping_amount),
            "total": str(self.total),
        }


@dataclass(frozen=True)
class DiscountOutcome:
    code: str
    applied: bool
    amount: Decimal
    discount_id: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "applied": self.applied,
            "amount": str(self.amount),
            "reason": self.reason,
        }


@dataclass(frozen=True)
class OrderQuote:
    """Server-side, authoritative pricing of one checkout attempt."""

    items: tuple[PricedLineItem, ...]
    totals: OrderTotals
    discount: DiscountOutcome | None = None

    @property
    def discount_id(self) -> str | None:
        if self.discount is None or not self.discount.applied:
            return None
        return self.discount.discount_id

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "totals": self.totals.to_dict(),
            "discount": self.discount.to_dict() if self.discount else None,
        }
