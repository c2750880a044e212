from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Optional, Union


def utc_now() -> datetime:
    """Return the current timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class RenderMode(str, Enum):
    RAW = "raw"
    VIEW = "view"


@dataclass(frozen=True)
class StoredObject:
    """
    The persisted unit.

    code is a pure function of content; content and content_type never change
    once written. password holds a salted hash (see objects.gate), never the
    plaintext.
    """
    code: str
    content: bytes = field(repr=False)
    content_type: str
    password: Optional[str] = field(default=None, repr=False)
    created_at: datetime = field(default_factory=utc_now)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def password_active(self) -> bool:
        return self.password is not None

    @property
    def is_text(self) -> bool:
        major = self.content_type.split("/", 1)[0].strip().lower()
        if major == "text":
            return True
        base = self.content_type.split(";", 1)[0].strip().lower()
        return base in ("application/json", "application/xml", "application/javascript") or base.endswith("+json") or base.endswith("+xml")


@dataclass(frozen=True)
class IngestResult:
    object: StoredObject
    created: bool

    @property
    def code(self) -> str:
        return self.object.code

    @property
    def password_active(self) -> bool:
        return self.object.password_active


@dataclass(frozen=True)
class RetrievalRequest:
    code: str
    password_attempt: Optional[str] = field(default=None, repr=False)
    want_raw: bool = False


# ---------------------------------------------------------------------
# Retrieval results
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Found:
    object: StoredObject
    mode: RenderMode

    status: ClassVar[str] = "found"
    http_status: ClassVar[int] = 200

    @property
    def content(self) -> bytes:
        return self.object.content

    @property
    def content_type(self) -> str:
        return self.object.content_type


@dataclass(frozen=True)
class Forbidden:
    code: str

    status: ClassVar[str] = "forbidden"
    http_status: ClassVar[int] = 403


@dataclass(frozen=True)
class NotFound:
    code: str

    status: ClassVar[str] = "not_found"
    http_status: ClassVar[int] = 404


@dataclass(frozen=True)
class StorageFailure:
    code: str
    reason: str

    status: ClassVar[str] = "storage_error"
    http_status: ClassVar[int] = 500


RetrievalResult = Union[Found, Forbidden, NotFound, StorageFailure]
