from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.core.clock import now_utc
from storefront.persistence.models import (
    BundleModel,
    DiscountModel,
    ProductAddonModel,
    ProductConfigModel,
    ProductModel,
    ProductVariantModel,
)

logger = logging.getLogger(__name__)

VM_PRO_ID = "prod-vm-pro"
LOAD_BALANCER_ID = "prod-lb-enterprise"
STARTUP_BUNDLE_ID = "bundle-startup"


def _vm_pro() -> ProductModel:
    product = ProductModel(
        id=VM_PRO_ID,
        name="Virtual Machine Pro",
        slug="virtual-machine-pro",
        sku="VM-PRO-001",
        base_price=Decimal("99.99"),
        status="ACTIVE",
    )
    product.variants = [
        ProductVariantModel(id="var-vm-basic", name="Basic", sku="VM-PRO-BASIC", price=Decimal("49.99"), sort_order=0),
        ProductVariantModel(id="var-vm-pro", name="Pro", sku="VM-PRO-PRO", price=Decimal("99.99"), sort_order=1),
        ProductVariantModel(id="var-vm-ent", name="Enterprise", sku="VM-PRO-ENT", price=Decimal("199.99"), sort_order=2),
    ]
    product.addons = [
        ProductAddonModel(
            id="addon-ipv4",
            name="Additional IPv4 Address",
            price=Decimal("5.00"),
            pricing_type="RECURRING_MONTHLY",
            sort_order=0,
        ),
        ProductAddonModel(
            id="addon-backups",
            name="Managed Backups",
            price=Decimal("15.00"),
            pricing_type="RECURRING_MONTHLY",
            sort_order=1,
        ),
    ]
    product.configs = [
        ProductConfigModel(
            id="cfg-os",
            name="Operating System",
            options=[
                {"value": "ubuntu-22", "label": "Ubuntu 22.04 LTS", "priceModifier": 0},
                {"value": "debian-12", "label": "Debian 12", "priceModifier": 0},
                {"value": "windows-2022", "label": "Windows Server 2022", "priceModifier": 25},
            ],
            is_required=True,
            default_value="ubuntu-22",
            sort_order=0,
        ),
        ProductConfigModel(
            id="cfg-region",
            name="Data Center Region",
            options=[
                {"value": "us-east", "label": "US East (N. Virginia)", "priceModifier": 0},
                {"value": "us-west", "label": "US West (Oregon)", "priceModifier": 0},
                {"value": "eu-west", "label": "EU West (Ireland)", "priceModifier": 5},
            ],
            is_required=True,
            default_value="us-east",
            sort_order=1,
        ),
    ]
    return product


def seed_demo_catalog(session: Session) -> dict:
    if session.get(ProductModel, VM_PRO_ID) is not None:
        return {"seeded_now": False, "products": [VM_PRO_ID, LOAD_BALANCER_ID], "bundles": [STARTUP_BUNDLE_ID]}

    now = now_utc()
    session.add(_vm_pro())
    session.add(
        ProductModel(
            id=LOAD_BALANCER_ID,
            name="Load Balancer Enterprise",
            slug="load-balancer-enterprise",
            sku="LB-ENT-001",
            base_price=Decimal("79.99"),
            status="ACTIVE",
        )
    )
    session.add(
        BundleModel(
            id=STARTUP_BUNDLE_ID,
            name="Startup Bundle",
            slug="startup-bundle",
            price=Decimal("199.99"),
            status="ACTIVE",
        )
    )
    for code, type_, value, max_discount in (
        ("SAVE20", "PERCENTAGE", Decimal("20"), None),
        ("FLAT50", "FIXED", Decimal("50"), None),
    ):
        exists = session.scalar(select(DiscountModel.id).where(DiscountModel.code == code))
        if exists is None:
            session.add(
                DiscountModel(
                    code=code,
                    type=type_,
                    value=value,
                    max_discount=max_discount,
                    usage_count=0,
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
            )
    session.flush()
    logger.info("demo catalog seeded")
    return {"seeded_now": True, "products": [VM_PRO_ID, LOAD_BALANCER_ID], "bundles": [STARTUP_BUNDLE_ID]}
