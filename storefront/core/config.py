from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ADMIN_API_KEY = "sf-admin-dev-key"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="SF_", extra="ignore")

    app_name: str = "Storefront Checkout"
    env: str = "dev"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    app_url: str = "http://localhost:3000"
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./storefront.db"

    bootstrap_demo_on_startup: bool = False

    tax_rate: Decimal = Field(default=Decimal("0.10"), ge=0, le=1)
    shipping_amount: Decimal = Field(default=Decimal("0"), ge=0)

    # Unknown addon/config references left in a stale cart are dropped instead of failing checkout.
    ignore_unknown_modifiers: bool = True
    # reject: a present-but-unusable code fails checkout | ignore: price at full amount and report why
    discount_rejection_policy: Literal["reject", "ignore"] = "reject"

    auth_enabled: bool = True
    admin_api_key: str = DEFAULT_ADMIN_API_KEY
    admin_actor_id: str = "admin-001"

    # Payment providers: live | fake
    payment_backend: Literal["live", "fake"] = "live"

    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    stripe_currency: str = "usd"
    stripe_webhook_tolerance_seconds: int = 300

    razorpay_key_id: str | None = None
    razorpay_key_secret: str | None = None
    razorpay_currency: str = "INR"

    def model_post_init(self, __context) -> None:
        if self.env.lower() == "dev":
            return

        insecure_items: list[str] = []
        if self.admin_api_key == DEFAULT_ADMIN_API_KEY:
            insecure_items.append("SF_ADMIN_API_KEY")

        if insecure_items:
            raise ValueError(
                "insecure default secrets are not allowed outside dev mode; set env vars: "
                + ", ".join(sorted(insecure_items))
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
