from storefront.demo.catalog import LOAD_BALANCER_ID, STARTUP_BUNDLE_ID, VM_PRO_ID, seed_demo_catalog

__all__ = ["LOAD_BALANCER_ID", "STARTUP_BUNDLE_ID", "VM_PRO_ID", "seed_demo_catalog"]
