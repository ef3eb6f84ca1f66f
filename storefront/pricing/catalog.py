from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from storefront.core.clock import ensure_utc
from storefront.core.money import to_money
from storefront.persistence.models import BundleModel, DiscountModel, ProductModel

ACTIVE = "ACTIVE"


@dataclass(frozen=True)
class ConfigOption:
    value: str
    label: str
    price_modifier: Decimal = Decimal("0")


@dataclass(frozen=True)
class VariantSnapshot:
    id: str
    name: str
    sku: str | None
    price: Decimal
    is_active: bool = True


@dataclass(frozen=True)
class AddonSnapshot:
    id: str
    name: str
    price: Decimal
    is_active: bool = True


@dataclass(frozen=True)
class ConfigSnapshot:
    id: str
    name: str
    options: tuple[ConfigOption, ...] = ()

    def option_for(self, value: str) -> ConfigOption | None:
        for option in self.options:
            if option.value == value:
                return option
        return None


@dataclass(frozen=True)
class ProductSnapshot:
    id: str
    name: str
    sku: str | None
    base_price: Decimal
    status: str = ACTIVE
    variants: tuple[VariantSnapshot, ...] = ()
    addons: tuple[AddonSnapshot, ...] = ()
    configs: tuple[ConfigSnapshot, ...] = ()

    @property
    def is_purchasable(self) -> bool:
        return self.status == ACTIVE

    def variant(self, variant_id: str) -> VariantSnapshot | None:
        return next((v for v in self.variants if v.id == variant_id), None)

    def addon(self, addon_id: str) -> AddonSnapshot | None:
        return next((a for a in self.addons if a.id == addon_id and a.is_active), None)

    def config(self, config_id: str) -> ConfigSnapshot | None:
        return next((c for c in self.configs if c.id == config_id), None)


@dataclass(frozen=True)
class BundleSnapshot:
    id: str
    name: str
    price: Decimal
    status: str = ACTIVE
    valid_from: datetime | None = None
    valid_until: datetime | None = None

    def is_purchasable(self, now: datetime) -> bool:
        if self.status != ACTIVE:
            return False
        if self.valid_from is not None and now < self.valid_from:
            return False
        if self.valid_until is not None and now > self.valid_until:
            return False
        return True


@dataclass(frozen=True)
class DiscountSnapshot:
    id: str
    code: str
    type: str
    value: Decimal
    min_purchase: Decimal | None = None
    max_discount: Decimal | None = None
    usage_limit: int | None = None
    usage_count: int = 0
    is_active: bool = True
    starts_at: datetime | None = None
    expires_at: datetime | None = None


class CatalogLookup(Protocol):
    def get_product(self, product_id: str) -> ProductSnapshot | None:
        ...

    def get_bundle(self, bundle_id: str) -> BundleSnapshot | None:
        ...

    def find_discount(self, code: str) -> DiscountSnapshot | None:
        ...


def _option_from_raw(raw: Any) -> ConfigOption | None:
    if not isinstance(raw, dict) or "value" not in raw:
        return None
    modifier = raw.get("priceModifier", raw.get("price_modifier"))
    return ConfigOption(
        value=str(raw["value"]),
        label=str(raw.get("label", raw["value"])),
        price_modifier=to_money(modifier) if modifier is not None else Decimal("0"),
    )


def product_snapshot(row: ProductModel) -> ProductSnapshot:
    configs = []
    for config in row.configs:
        options = tuple(opt for opt in (_option_from_raw(raw) for raw in (config.options or [])) if opt)
        configs.append(ConfigSnapshot(id=config.id, name=config.name, options=options))
    return ProductSnapshot(
        id=row.id,
        name=row.name,
        sku=row.sku,
        base_price=to_money(row.base_price),
        status=row.status,
        variants=tuple(
            VariantSnapshot(id=v.id, name=v.name, sku=v.sku, price=to_money(v.price), is_active=v.is_active)
            for v in row.variants
        ),
        addons=tuple(
            AddonSnapshot(id=a.id, name=a.name, price=to_money(a.price), is_active=a.is_active)
            for a in row.addons
        ),
        configs=tuple(configs),
    )


def bundle_snapshot(row: BundleModel) -> BundleSnapshot:
    return BundleSnapshot(
        id=row.id,
        name=row.name,
        price=to_money(row.price),
        status=row.status,
        valid_from=ensure_utc(row.valid_from),
        valid_until=ensure_utc(row.valid_until),
    )


def discount_snapshot(row: DiscountModel) -> DiscountSnapshot:
    return DiscountSnapshot(
        id=row.id,
        code=row.code,
        type=row.type,
        value=to_money(row.value),
        min_purchase=to_money(row.min_purchase) if row.min_purchase is not None else None,
        max_discount=to_money(row.max_discount) if row.max_discount is not None else None,
        usage_limit=row.usage_limit,
        usage_count=row.usage_count,
        is_active=row.is_active,
        starts_at=ensure_utc(row.starts_at),
        expires_at=ensure_utc(row.expires_at),
    )


class SqlCatalog:
    """Read-only view of the catalog tables. Nothing here writes."""

    def __init__(self, session: Session):
        self.session = session

    def get_product(self, product_id: str) -> ProductSnapshot | None:
        stmt = (
            select(ProductModel)
            .where(ProductModel.id == product_id)
            .options(
                selectinload(ProductModel.variants),
                selectinload(ProductModel.addons),
                selectinload(ProductModel.configs),
            )
        )
        row = self.session.scalar(stmt)
        return product_snapshot(row) if row is not None else None

    def get_bundle(self, bundle_id: str) -> BundleSnapshot | None:
        row = self.session.get(BundleModel, bundle_id)
        return bundle_snapshot(row) if row is not None else None

    def find_discount(self, code: str) -> DiscountSnapshot | None:
        stmt = select(DiscountModel).where(DiscountModel.code == code.strip().upper())
        row = self.session.scalar(stmt)
        return discount_snapshot(row) if row is not None else None


@dataclass
class InMemoryCatalog:
    products: dict[str, ProductSnapshot] = field(default_factory=dict)
    bundles: dict[str, BundleSnapshot] = field(default_factory=dict)
    discounts: dict[str, DiscountSnapshot] = field(default_factory=dict)

    def add_product(self, product: ProductSnapshot) -> ProductSnapshot:
        self.products[product.id] = product
        return product

    def add_bundle(self, bundle: BundleSnapshot) -> BundleSnapshot:
        self.bundles[bundle.id] = bundle
        return bundle

    def add_discount(self, discount: DiscountSnapshot) -> DiscountSnapshot:
        self.discounts[discount.code.upper()] = discount
        return discount

    def get_product(self, product_id: str) -> ProductSnapshot | None:
        return self.products.get(product_id)

    def get_bundle(self, bundle_id: str) -> BundleSnapshot | None:
        return self.bundles.get(bundle_id)

    def find_discount(self, code: str) -> DiscountSnapshot | None:
        return self.discounts.get(code.strip().upper())
