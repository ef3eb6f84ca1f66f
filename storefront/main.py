from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.api.routes_checkout import router as checkout_router
from storefront.api.routes_discounts import router as discounts_router
from storefront.api.routes_orders import router as orders_router
from storefront.api.routes_payments import router as payments_router
from storefront.core.config import get_settings
from storefront.core.logging import configure_logging
from storefront.demo import seed_demo_catalog
from storefront.errors import PricingError
from storefront.payments import reset_fake_gateways
from storefront.persistence.db import init_db, session_scope

configure_logging()
logger = logging.getLogger(__name__)
settings = get_settings()

app = FastAPI(title=settings.app_name)


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    reset_fake_gateways()
    if settings.bootstrap_demo_on_startup:
        with session_scope() as session:
            result = seed_demo_catalog(session)
        logger.info("demo catalog ready: seeded_now=%s", result.get("seeded_now"))


@app.exception_handler(PricingError)
async def pricing_error_handler(_: Request, exc: PricingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_: Request, exc: RequestValidationError):
    details = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"error": "Invalid request data", "details": details})


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


app.include_router(checkout_router)
app.include_router(payments_router)
app.include_router(discounts_router)
app.include_router(orders_router)
