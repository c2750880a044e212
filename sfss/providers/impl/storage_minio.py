from __future__ import annotations

import io
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional

from minio import Minio
from minio.error import S3Error

from sfss.providers.storage import StorageObject, StorageProvider

_META_HEADER_PREFIX = "x-amz-meta-"
_MISSING_CODES = ("NoSuchKey", "NoSuchObject")


def _strip_http(endpoint: str) -> str:
    # Minio client expects "host:port" (no scheme)
    endpoint = (endpoint or "").strip()
    endpoint = endpoint.replace("http://", "").replace("https://", "")
    endpoint = endpoint.rstrip("/")
    return endpoint


@dataclass
class MinioStorageProvider(StorageProvider):
    """
    MinIO-backed implementation of StorageProvider.

    Notes:
      - We auto-create the bucket if missing.
      - Keys are treated as opaque strings (e.g. objects/ab/abcdef...).
      - The minio client has no conditional put, so put-if-absent is a
        stat-then-put under a process-local lock. Two processes racing on
        the same key both write identical bytes; first-writer metadata is
        only guaranteed within one process. Use the S3 provider with
        If-None-Match support when running several workers.
    """

    endpoint: str
    bucket: str
    access_key: str
    secret_key: str
    secure: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        host = _strip_http(self.endpoint)
        if not host:
            raise RuntimeError("MINIO_ENDPOINT is empty or invalid")

        self._client = Minio(
            host,
            access_key=self.access_key,
            secret_key=self.secret_key,
            secure=bool(self.secure),
        )

        # Ensure bucket exists
        try:
            if not self._client.bucket_exists(self.bucket):
                self._client.make_bucket(self.bucket)
        except Exception as e:
            raise RuntimeError(f"MinIO bucket init failed (bucket={self.bucket}): {e}") from e

    def object_exists(self, key: str) -> bool:
        key = (key or "").lstrip("/")
        try:
            self._client.stat_object(self.bucket, key)
        except S3Error as e:
            if getattr(e, "code", "") in _MISSING_CODES:
                return False
            raise
        return True

    def put_object_if_absent(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> bool:
        key = (key or "").lstrip("/")

        # metadata headers must be strings
        meta: Dict[str, str] = {}
        if metadata:
            for k, v in metadata.items():
                if v is None:
                    continue
                meta[str(k)] = str(v)

        with self._lock:
            if self.object_exists(key):
                return False
            self._client.put_object(
                bucket_name=self.bucket,
                object_name=key,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type or "application/octet-stream",
                metadata=meta or None,
            )
        return True

    def get_object(self, key: str) -> StorageObject:
        key = (key or "").lstrip("/")
        try:
            resp = self._client.get_object(self.bucket, key)
        except S3Error as e:
            # Not found raises FileNotFoundError to match local provider behavior
            if getattr(e, "code", "") in _MISSING_CODES:
                raise FileNotFoundError(key) from e
            raise
        try:
            data = resp.read()
            headers = dict(resp.headers.items())
        finally:
            resp.close()
            resp.release_conn()

        metadata: Dict[str, str] = {}
        content_type = "application/octet-stream"
        for name, value in headers.items():
            lowered = name.lower()
            if lowered.startswith(_META_HEADER_PREFIX):
                metadata[lowered[len(_META_HEADER_PREFIX):]] = value
            elif lowered == "content-type":
                content_type = value or content_type
        return StorageObject(key=key, data=data, content_type=content_type, metadata=metadata)
