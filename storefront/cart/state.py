"""Client-side cart mirror as a pure reducer.

Every mutation is ``reduce(state, action) -> new state``; nothing is mutated in
place. The numbers produced here are advisory only: checkout reprices the cart
on the server from catalog data and ignores these values.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Union

from storefront.core.money import ZERO, quantize_money, to_money
from storefront.pricing.models import AddonSelection, ConfigSelection, LineItemRequest, OrderTotals
from storefront.pricing.totals import DEFAULT_TAX_RATE, compute_totals


@dataclass(frozen=True)
class SelectedAddon:
    addon_id: str
    name: str
    price: Decimal
    quantity: int = 1


@dataclass(frozen=True)
class SelectedConfig:
    config_id: str
    config_name: str
    value: str
    price_modifier: Decimal = ZERO


@dataclass(frozen=True)
class CartItem:
    id: str
    name: str
    quantity: int
    unit_price: Decimal
    product_id: str | None = None
    variant_id: str | None = None
    bundle_id: str | None = None
    selected_addons: tuple[SelectedAddon, ...] = ()
    selected_configs: tuple[SelectedConfig, ...] = ()

    @property
    def effective_unit_price(self) -> Decimal:
        price = self.unit_price
        price += sum((a.price * a.quantity for a in self.selected_addons), ZERO)
        price += sum((c.price_modifier for c in self.selected_configs), ZERO)
        return quantize_money(price)

    @property
    def total_price(self) -> Decimal:
        return quantize_money(self.effective_unit_price * self.quantity)


@dataclass(frozen=True)
class CartState:
    items: tuple[CartItem, ...] = ()
    is_open: bool = False
    discount_code: str | None = None
    discount_amount: Decimal = ZERO


def cart_item_id(
    product_id: str | None,
    bundle_id: str | None,
    variant_id: str | None,
    configs: tuple[SelectedConfig, ...] = (),
) -> str:
    selection = json.dumps([[c.config_id, c.value] for c in configs], separators=(",", ":"))
    return f"{product_id or bundle_id}-{variant_id or 'default'}-{selection}"


@dataclass(frozen=True)
class AddItem:
    name: str
    unit_price: Decimal
    quantity: int = 1
    product_id: str | None = None
    variant_id: str | None = None
    bundle_id: str | None = None
    selected_addons: tuple[SelectedAddon, ...] = ()
    selected_configs: tuple[SelectedConfig, ...] = ()


@dataclass(frozen=True)
class RemoveItem:
    item_id: str


@dataclass(frozen=True)
class UpdateQuantity:
    item_id: str
    quantity: int


@dataclass(frozen=True)
class UpdateAddons:
    item_id: str
    addons: tuple[SelectedAddon, ...]


@dataclass(frozen=True)
class ApplyDiscount:
    code: str
    amount: Decimal


@dataclass(frozen=True)
class RemoveDiscount:
    pass


@dataclass(frozen=True)
class ClearCart:
    pass


@dataclass(frozen=True)
class SetOpen:
    is_open: bool


CartAction = Union[AddItem, RemoveItem, UpdateQuantity, UpdateAddons, ApplyDiscount, RemoveDiscount, ClearCart, SetOpen]


def _replace_item(state: CartState, item_id: str, **changes) -> CartState:
    items = tuple(replace(item, **changes) if item.id == item_id else item for item in state.items)
    return replace(state, items=items)


def _add_item(state: CartState, action: AddItem) -> CartState:
    if (action.product_id is None) == (action.bundle_id is None):
        raise ValueError("cart item needs exactly one of product_id or bundle_id")
    if action.quantity < 1:
        return state
    item_id = cart_item_id(action.product_id, action.bundle_id, action.variant_id, action.selected_configs)
    existing = next((item for item in state.items if item.id == item_id), None)
    if existing is not None:
        state = _replace_item(state, item_id, quantity=existing.quantity + action.quantity)
    else:
        item = CartItem(
            id=item_id,
            name=action.name,
            quantity=action.quantity,
            unit_price=to_money(action.unit_price),
            product_id=action.product_id,
            variant_id=action.variant_id,
            bundle_id=action.bundle_id,
            selected_addons=tuple(action.selected_addons),
            selected_configs=tuple(action.selected_configs),
        )
        state = replace(state, items=state.items + (item,))
    return replace(state, is_open=True)


def reduce(state: CartState, action: CartAction) -> CartState:
    if isinstance(action, AddItem):
        return _add_item(state, action)
    if isinstance(action, RemoveItem):
        return replace(state, items=tuple(item for item in state.items if item.id != action.item_id))
    if isinstance(action, UpdateQuantity):
        if action.quantity < 1:
            return reduce(state, RemoveItem(action.item_id))
        return _replace_item(state, action.item_id, quantity=action.quantity)
    if isinstance(action, UpdateAddons):
        return _replace_item(state, action.item_id, selected_addons=tuple(action.addons))
    if isinstance(action, ApplyDiscount):
        return replace(state, discount_code=action.code.strip().upper(), discount_amount=to_money(action.amount))
    if isinstance(action, RemoveDiscount):
        return replace(state, discount_code=None, discount_amount=ZERO)
    if isinstance(action, ClearCart):
        return replace(state, items=(), discount_code=None, discount_amount=ZERO)
    if isinstance(action, SetOpen):
        return replace(state, is_open=action.is_open)
    raise TypeError(f"unsupported cart action: {type(action).__name__}")


def totals(state: CartState, tax_rate: Decimal = DEFAULT_TAX_RATE) -> OrderTotals:
    return compute_totals(
        (item.total_price for item in state.items),
        discount_amount=state.discount_amount,
        tax_rate=tax_rate,
    )


def subtotal(state: CartState) -> Decimal:
    return totals(state).subtotal


def tax(state: CartState, tax_rate: Decimal = DEFAULT_TAX_RATE) -> Decimal:
    return totals(state, tax_rate).tax_amount


def total(state: CartState, tax_rate: Decimal = DEFAULT_TAX_RATE) -> Decimal:
    return totals(state, tax_rate).total


def item_count(state: CartState) -> int:
    return sum(item.quantity for item in state.items)


def to_checkout_items(state: CartState) -> list[LineItemRequest]:
    """Strip client prices; the server only needs references and quantities."""
    requests = []
    for item in state.items:
        if item.bundle_id:
            requests.append(LineItemRequest(bundle_id=item.bundle_id, quantity=item.quantity))
            continue
        requests.append(
            LineItemRequest(
                product_id=item.product_id,
                variant_id=item.variant_id,
                quantity=item.quantity,
                addons=[AddonSelection(addon_id=a.addon_id, quantity=a.quantity) for a in item.selected_addons],
                configs=[ConfigSelection(config_id=c.config_id, value=c.value) for c in item.selected_configs],
            )
        )
    return requests
