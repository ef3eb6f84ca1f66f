from storefront.cart.flow import CheckoutFlow, CheckoutStatus, InvalidTransition
from storefront.cart.state import (
    AddItem,
    ApplyDiscount,
    CartItem,
    CartState,
    ClearCart,
    RemoveDiscount,
    RemoveItem,
    SelectedAddon,
    SelectedConfig,
    SetOpen,
    UpdateAddons,
    UpdateQuantity,
    item_count,
    reduce,
    subtotal,
    tax,
    to_checkout_items,
    total,
    totals,
)

__all__ = [
    "AddItem",
    "ApplyDiscount",
    "CartItem",
    "CartState",
    "CheckoutFlow",
    "CheckoutStatus",
    "ClearCart",
    "InvalidTransition",
    "RemoveDiscount",
    "RemoveItem",
    "SelectedAddon",
    "SelectedConfig",
    "SetOpen",
    "UpdateAddons",
    "UpdateQuantity",
    "item_count",
    "reduce",
    "subtotal",
    "tax",
    "to_checkout_items",
    "total",
    "totals",
]
