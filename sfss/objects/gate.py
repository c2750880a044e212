from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
from enum import Enum
from typing import Optional

from sfss.objects.models import StoredObject

logger = logging.getLogger(__name__)

_SCHEME = "pbkdf2_sha256"
PBKDF2_ITERATIONS = 240_000
_SALT_BYTES = 16


class GateDecision(str, Enum):
    ALLOWED = "allowed"
    FORBIDDEN = "forbidden"


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _unb64(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str) -> str:
    """
    Salted PBKDF2 hash, encoded as pbkdf2_sha256$<iterations>$<salt>$<digest>.

    The iteration count travels with the hash so it can be raised later
    without invalidating stored objects.
    """
    salt = secrets.token_bytes(_SALT_BYTES)
    iterations = PBKDF2_ITERATIONS
    digest = _derive(password, salt, iterations)
    return f"{_SCHEME}${iterations}${_b64(salt)}${_b64(digest)}"


def verify_password(stored: str, attempt: str) -> bool:
    try:
        scheme, raw_iterations, raw_salt, raw_digest = stored.split("$")
        iterations = int(raw_iterations)
        salt = _unb64(raw_salt)
        expected = _unb64(raw_digest)
    except (ValueError, TypeError):
        logger.warning("[Gate] unreadable password hash; denying access")
        return False
    if scheme != _SCHEME or iterations <= 0:
        logger.warning("[Gate] unsupported password hash scheme %r; denying access", scheme)
        return False
    # Constant-time: no early exit on the first differing byte.
    return hmac.compare_digest(_derive(attempt, salt, iterations), expected)


def normalize_password(password: Optional[str]) -> Optional[str]:
    """Treat an empty form field the same as no password at all."""
    if password is None or password == "":
        return None
    return password


def check(obj: StoredObject, password_attempt: Optional[str]) -> GateDecision:
    """
    Decide whether a caller may read obj.

    Missing and wrong passwords produce the same FORBIDDEN decision.
    """
    if obj.password is None:
        return GateDecision.ALLOWED
    attempt = normalize_password(password_attempt)
    if attempt is None:
        return GateDecision.FORBIDDEN
    if verify_password(obj.password, attempt):
        return GateDecision.ALLOWED
    return GateDecision.FORBIDDEN
