# sfss/main.py
from __future__ import annotations

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI

from sfss.core.providers import init_providers
from sfss.core.settings import Settings, load_settings
from sfss.providers.storage import StorageProvider

# Routers
from sfss.health.router import router as health_router
from sfss.share.router import router as share_router

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------

def create_app(settings: Optional[Settings] = None, storage: Optional[StorageProvider] = None) -> FastAPI:
    """
    Build the service.

    settings are loaded from the environment when not given and then stay
    fixed for the lifetime of the app (app.state.providers.settings).
    """
    if settings is None:
        settings = load_settings()

    app = FastAPI(title=settings.app.title)
    init_providers(app, settings, storage=storage)

    # Health first: share's /{code} route would otherwise capture /health.
    app.include_router(health_router)
    app.include_router(share_router)
    return app


# ---------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------

def run() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info("[Main] starting %s at %s%s", settings.app.title, settings.app.url, settings.app.webroot)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
