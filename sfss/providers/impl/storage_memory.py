from __future__ import annotations

import threading
from typing import Dict, List, Optional

from sfss.providers.storage import StorageObject, StorageProvider


class InMemoryStorageProvider(StorageProvider):
    """
    Dict-backed provider for development and testing.

    Not durable: everything is lost when the process exits.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._objects: Dict[str, StorageObject] = {}
        self.write_count = 0

    def put_object_if_absent(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> bool:
        key = (key or "").lstrip("/")
        with self._lock:
            if key in self._objects:
                return False
            self._objects[key] = StorageObject(
                key=key,
                data=bytes(data),
                content_type=content_type or "application/octet-stream",
                metadata={str(k): str(v) for k, v in (metadata or {}).items()},
            )
            self.write_count += 1
            return True

    def get_object(self, key: str) -> StorageObject:
        key = (key or "").lstrip("/")
        with self._lock:
            obj = self._objects.get(key)
        if obj is None:
            raise FileNotFoundError(key)
        return obj

    def object_exists(self, key: str) -> bool:
        with self._lock:
            return (key or "").lstrip("/") in self._objects

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(self._objects)
