from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class StorageObject:
    """
    One object as read back from a provider: bytes plus what was stored next to them.
    """
    key: str
    data: bytes = field(repr=False)
    content_type: str
    metadata: Dict[str, str] = field(default_factory=dict)


@runtime_checkable
class StorageProvider(Protocol):
    """
    Write-once object storage abstraction.

    Contract shared by every implementation:
      - put_object_if_absent publishes data + content type + metadata
        atomically; readers see all of it or nothing.
      - a missing key raises FileNotFoundError from get_object, so callers
        can tell "absent" apart from real storage failures.
      - metadata keys are lowercase strings, values are strings.
    """

    def put_object_if_absent(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> bool:
        """Return True when this call wrote the object, False when it already existed."""
        ...

    def get_object(self, key: str) -> StorageObject: ...

    def object_exists(self, key: str) -> bool: ...
