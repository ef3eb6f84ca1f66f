from __future__ import annotations

import logging

from storefront.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def configure_logging(level: str | None = None) -> None:
    global _configured
    if _configured:
        return
    settings = get_settings()
    logging.basicConfig(level=(level or settings.log_level).upper(), format=LOG_FORMAT)
    # uvicorn installs its own handlers; keep its access log at the configured level too
    logging.getLogger("uvicorn.access").setLevel((level or settings.log_level).upper())
    _configured = True
