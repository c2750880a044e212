# sfss/health/router.py
from __future__ import annotations

import logging

from fastapi import APIRouter

from sfss.core.deps import SettingsDep, StorageDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

_PROBE_KEY = "health/probe"


@router.get("/health")
def health():
    # Keep this super simple and always unauthenticated
    return {"ok": True}


@router.get("/health/storage")
def health_storage(storage: StorageDep, settings: SettingsDep):
    """
    Verifies the configured storage provider answers a lookup.

    The probe key is never written; a clean "absent" answer is healthy.
    """
    provider = settings.storage.provider
    try:
        storage.object_exists(_PROBE_KEY)
    except Exception as e:
        logger.exception("[Health] storage probe failed provider=%s", provider)
        return {
            "ok": False,
            "storageReachable": False,
            "provider": provider,
            "error": str(e),
        }
    return {"ok": True, "storageReachable": True, "provider": provider}
