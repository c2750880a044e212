from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request

from sfss.core.settings import Settings
from sfss.providers.factory import Providers, build_providers
from sfss.providers.storage import StorageProvider


def init_providers(app: FastAPI, settings: Settings, storage: Optional[StorageProvider] = None) -> Providers:
    """
    Canonical provider initialization.
    Called once while building the app. Attaches Providers onto app.state.
    """
    app.state.providers = build_providers(settings, storage=storage)
    return app.state.providers


def providers_from_request(request: Request) -> Providers:
    """
    Canonical provider accessor for ALL routers.

    Providers are attached once during app construction as request.app.state.providers.
    """
    try:
        return request.app.state.providers
    except AttributeError as exc:
        raise RuntimeError("Providers not initialized on app.state (create_app() not used).") from exc
