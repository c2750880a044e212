from __future__ import annotations

import logging
from typing import Optional

from sfss.objects.errors import ObjectNotFoundError, StorageError
from sfss.objects.fingerprint import is_valid_code
from sfss.objects.gate import GateDecision, check
from sfss.objects.models import (
    Forbidden,
    Found,
    NotFound,
    RenderMode,
    RetrievalResult,
    StorageFailure,
)
from sfss.objects.repository import ObjectRepository

logger = logging.getLogger(__name__)


def resolve(
    repository: ObjectRepository,
    code: str,
    password_attempt: Optional[str] = None,
    want_raw: bool = False,
) -> RetrievalResult:
    """Look up code, apply the password gate and tag the result with the presentation mode."""
    if not is_valid_code(code):
        return NotFound(code=code)

    try:
        obj = repository.get(code)
    except ObjectNotFoundError:
        return NotFound(code=code)
    except StorageError as exc:
        # Already logged with a traceback by the repository.
        return StorageFailure(code=code, reason=exc.reason)

    if check(obj, password_attempt) is GateDecision.FORBIDDEN:
        logger.info("[Resolve] gate denied code=%s", code)
        return Forbidden(code=code)

    return Found(object=obj, mode=RenderMode.RAW if want_raw else RenderMode.VIEW)
