from storefront.pricing.catalog import (
    AddonSnapshot,
    BundleSnapshot,
    CatalogLookup,
    ConfigOption,
    ConfigSnapshot,
    DiscountSnapshot,
    InMemoryCatalog,
    ProductSnapshot,
    SqlCatalog,
    VariantSnapshot,
)
from storefront.pricing.discounts import (
    DiscountDecision,
    DiscountLedger,
    DiscountValidator,
    RedemptionOutcome,
    RejectionReason,
)
from storefront.pricing.engine import PricingEngine, PricingPolicy
from storefront.pricing.models import (
    AddonSelection,
    ConfigSelection,
    DiscountOutcome,
    LineItemRequest,
    OrderQuote,
    OrderTotals,
    PricedAddon,
    PricedLineItem,
)
from storefront.pricing.totals import compute_totals

__all__ = [
    "AddonSelection",
    "AddonSnapshot",
    "BundleSnapshot",
    "CatalogLookup",
    "ConfigOption",
    "ConfigSelection",
    "ConfigSnapshot",
    "DiscountDecision",
    "DiscountLedger",
    "DiscountOutcome",
    "DiscountSnapshot",
    "DiscountValidator",
    "InMemoryCatalog",
    "LineItemRequest",
    "OrderQuote",
    "OrderTotals",
    "PricedAddon",
    "PricedLineItem",
    "PricingEngine",
    "PricingPolicy",
    "ProductSnapshot",
    "RedemptionOutcome",
    "RejectionReason",
    "SqlCatalog",
    "VariantSnapshot",
    "compute_totals",
]
