from __future__ import annotations

import logging
import mimetypes
import re
from typing import Optional

from sfss.core.config import DEFAULT_CONTENT_TYPE, TEXT_CONTENT_TYPE
from sfss.objects.errors import EmptyPayloadError, PayloadTooLargeError
from sfss.objects.fingerprint import fingerprint
from sfss.objects.gate import hash_password, normalize_password
from sfss.objects.models import IngestResult
from sfss.objects.repository import ObjectRepository

logger = logging.getLogger(__name__)

# type/subtype with optional ;param=value pairs (RFC 6838 token characters).
_TOKEN = r"[A-Za-z0-9!#$&^_.+-]+"
_CONTENT_TYPE_PATTERN = re.compile(
    rf"^{_TOKEN}/{_TOKEN}(\s*;\s*{_TOKEN}=(\"[^\"\r\n]*\"|{_TOKEN}))*$"
)


def is_well_formed_content_type(value: Optional[str]) -> bool:
    if not value:
        return False
    return len(value) <= 255 and bool(_CONTENT_TYPE_PATTERN.match(value.strip()))


def _looks_like_text(content: bytes) -> bool:
    if b"\x00" in content:
        return False
    try:
        content.decode("utf-8")
    except UnicodeDecodeError:
        return False
    return True


def infer_content_type(
    content: bytes,
    declared: Optional[str] = None,
    filename: Optional[str] = None,
) -> str:
    """
    Pick the stored media type.

    Order: well-formed declared type, then a guess from the filename
    extension, then UTF-8 text, then opaque binary.
    """
    if is_well_formed_content_type(declared):
        return declared.strip()
    if declared:
        logger.info("[Ingest] ignoring malformed declared content type %r", declared[:80])

    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            if guessed.startswith("text/") and _looks_like_text(content):
                return f"{guessed}; charset=utf-8"
            return guessed

    if _looks_like_text(content):
        return TEXT_CONTENT_TYPE
    return DEFAULT_CONTENT_TYPE


def check_size(content: bytes, max_bytes: int) -> None:
    if not content:
        raise EmptyPayloadError()
    if len(content) > max_bytes:
        raise PayloadTooLargeError(len(content), max_bytes)


def ingest(
    repository: ObjectRepository,
    content: bytes,
    declared_password: Optional[str] = None,
    declared_content_type: Optional[str] = None,
    *,
    max_bytes: int,
    filename: Optional[str] = None,
) -> IngestResult:
    """
    Store an upload and return its code.

    Size checks run before anything touches storage. Dedup is first write
    wins: re-uploading stored content never changes its password or content
    type, and the result reports the stored state rather than the request.
    """
    try:
        check_size(content, max_bytes)
    except (EmptyPayloadError, PayloadTooLargeError) as exc:
        logger.info("[Ingest] rejected upload: %s", exc)
        raise

    code = fingerprint(content)
    content_type = infer_content_type(content, declared_content_type, filename)
    password = normalize_password(declared_password)
    password_hash = hash_password(password) if password is not None else None

    obj, created = repository.put_if_absent(code, content, content_type, password_hash)

    if not created:
        logger.info(
            "[Ingest] dedup hit code=%s password_requested=%s password_active=%s",
            code,
            password is not None,
            obj.password_active,
        )
    return IngestResult(object=obj, created=created)
