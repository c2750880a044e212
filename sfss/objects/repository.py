from __future__ import annotations

import hmac
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Tuple

from sfss.objects.errors import ObjectIntegrityError, ObjectNotFoundError, StorageError
from sfss.objects.fingerprint import content_digest
from sfss.objects.models import StoredObject, utc_now
from sfss.providers.storage import StorageObject, StorageProvider

logger = logging.getLogger(__name__)

# Sidecar metadata keys (lowercase: S3 and MinIO lowercase user metadata anyway).
META_CODE = "code"
META_SHA256 = "sha256"
META_SIZE = "size"
META_PASSWORD = "password"
META_CREATED_AT = "created-at"


def object_key(code: str) -> str:
    """Storage key for a code, sharded on the first two characters."""
    return f"objects/{code[:2]}/{code}"


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class _CodeLocks:
    """
    One lock per code, created on demand and dropped when unused.

    Only the registry itself is guarded by a shared lock; writers for
    different codes never wait on each other.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, _LockEntry] = {}

    @contextmanager
    def hold(self, code: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(code, _LockEntry())
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    self._entries.pop(code, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


def _parse_created_at(raw: Optional[str]) -> datetime:
    if not raw:
        return utc_now()
    parsed = datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


class ObjectRepository:
    """
    Durable code -> StoredObject storage over a StorageProvider.

    Provider "missing" signals (FileNotFoundError) become ObjectNotFoundError;
    everything else the provider raises becomes StorageError.
    """

    def __init__(self, storage: StorageProvider) -> None:
        self._storage = storage
        self._locks = _CodeLocks()

    @property
    def storage(self) -> StorageProvider:
        return self._storage

    def _to_metadata(self, obj: StoredObject) -> Dict[str, str]:
        meta = {
            META_CODE: obj.code,
            META_SHA256: content_digest(obj.content),
            META_SIZE: str(obj.size),
            META_CREATED_AT: obj.created_at.isoformat(),
        }
        if obj.password is not None:
            meta[META_PASSWORD] = obj.password
        return meta

    def _from_storage(self, code: str, raw: StorageObject) -> StoredObject:
        meta = raw.metadata
        stored_code = meta.get(META_CODE)
        if stored_code is not None and stored_code != code:
            raise StorageError(code, f"metadata names a different code ({stored_code!r})")

        expected = meta.get(META_SHA256)
        if expected:
            actual = content_digest(raw.data)
            if not hmac.compare_digest(actual, expected):
                raise ObjectIntegrityError(code, expected, actual)

        try:
            created_at = _parse_created_at(meta.get(META_CREATED_AT))
        except ValueError as exc:
            raise StorageError(code, "unreadable created-at timestamp") from exc

        return StoredObject(
            code=code,
            content=raw.data,
            content_type=raw.content_type,
            password=meta.get(META_PASSWORD) or None,
            created_at=created_at,
        )

    def get(self, code: str) -> StoredObject:
        try:
            raw = self._storage.get_object(object_key(code))
        except FileNotFoundError:
            raise ObjectNotFoundError(code) from None
        except Exception as exc:
            logger.exception("[Repository] read failed code=%s", code)
            raise StorageError(code, f"{type(exc).__name__}: {exc}") from exc
        try:
            return self._from_storage(code, raw)
        except StorageError:
            logger.exception("[Repository] stored object is unusable code=%s", code)
            raise

    def exists(self, code: str) -> bool:
        try:
            return self._storage.object_exists(object_key(code))
        except Exception as exc:
            logger.exception("[Repository] existence check failed code=%s", code)
            raise StorageError(code, f"{type(exc).__name__}: {exc}") from exc

    def put_if_absent(
        self,
        code: str,
        content: bytes,
        content_type: str,
        password: Optional[str] = None,
    ) -> Tuple[StoredObject, bool]:
        """
        Store content under code unless something is already there.

        Returns (object, created). When the code is taken the existing object
        is returned untouched, including its password.
        """
        with self._locks.hold(code):
            try:
                return self.get(code), False
            except ObjectNotFoundError:
                pass

            obj = StoredObject(
                code=code,
                content=content,
                content_type=content_type,
                password=password,
                created_at=utc_now(),
            )
            try:
                written = self._storage.put_object_if_absent(
                    object_key(code),
                    content,
                    content_type=content_type,
                    metadata=self._to_metadata(obj),
                )
            except Exception as exc:
                logger.exception("[Repository] write failed code=%s size=%s", code, len(content))
                raise StorageError(code, f"{type(exc).__name__}: {exc}") from exc

            if written:
                logger.info("[Repository] stored code=%s size=%s content_type=%s", code, obj.size, content_type)
                return obj, True

            # Another process published first; its object is authoritative.
            try:
                return self.get(code), False
            except ObjectNotFoundError:
                logger.error("[Repository] storage refused the write but holds no object code=%s", code)
                raise StorageError(code, "storage refused the write but holds no object") from None
