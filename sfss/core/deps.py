from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from sfss.core.providers import providers_from_request
from sfss.core.settings import AppSettings, Settings
from sfss.objects.service import ObjectStore
from sfss.providers.factory import Providers
from sfss.providers.storage import StorageProvider


# -----------------------------
# Canonical provider access
# -----------------------------

def get_providers(request: Request) -> Providers:
    """
    Canonical runtime provider resolver.

    Source of truth: request.app.state.providers
    """
    return providers_from_request(request)


# -----------------------------
# Canonical service deps
# -----------------------------

def get_settings(request: Request) -> Settings:
    return get_providers(request).settings


SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_app_settings(request: Request) -> AppSettings:
    return get_settings(request).app


AppSettingsDep = Annotated[AppSettings, Depends(get_app_settings)]


def get_store(request: Request) -> ObjectStore:
    return get_providers(request).store


StoreDep = Annotated[ObjectStore, Depends(get_store)]


def get_storage(request: Request) -> StorageProvider:
    return get_providers(request).storage


StorageDep = Annotated[StorageProvider, Depends(get_storage)]
