from __future__ import annotations

import base64
import hashlib
import re

# 96 bits of SHA-256, unpadded URL-safe base64 -> 16 characters.
CODE_BYTES = 12
CODE_LENGTH = 16

_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{%d}$" % CODE_LENGTH)


def content_digest(content: bytes) -> str:
    """Full SHA-256 hex digest, recorded next to stored content for integrity checks."""
    return hashlib.sha256(content).hexdigest()


def fingerprint(content: bytes) -> str:
    """
    Derive the public code for a blob.

    Depends on the bytes only, so identical uploads share a code no matter
    who uploads them or with which password.
    """
    digest = hashlib.sha256(content).digest()[:CODE_BYTES]
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def is_valid_code(code: object) -> bool:
    return isinstance(code, str) and bool(_CODE_PATTERN.match(code))
