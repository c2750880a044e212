from __future__ import annotations

from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from sfss.providers.storage import StorageObject, StorageProvider

# 412: the key already exists. 409: a concurrent conditional write to the same key is in flight.
_ALREADY_EXISTS_CODES = ("PreconditionFailed", "ConditionalRequestConflict", "412", "409")
_MISSING_CODES = ("NoSuchKey", "NotFound", "404")


def _error_code(exc: ClientError) -> str:
    return str((exc.response.get("Error") or {}).get("Code") or "")


class S3StorageProvider(StorageProvider):
    """
    AWS S3 (or S3-compatible, via endpoint_url) StorageProvider.

    Uses boto3 credential resolution; no access keys required/expected in AWS runtime.

    put_object_if_absent relies on S3 conditional writes (If-None-Match: *),
    so the first writer wins even across processes and the object becomes
    visible in one step together with its metadata.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ):
        bucket = (bucket or "").strip()
        if not bucket:
            raise RuntimeError("S3_BUCKET is required for S3 storage provider")

        prefix = (prefix or "").strip()
        if prefix and not prefix.endswith("/"):
            prefix = prefix + "/"

        self.bucket = bucket
        self.prefix = prefix

        if client is None:
            cfg = Config(
                retries={"max_attempts": 8, "mode": "standard"},
                region_name=(region or None),
            )
            client = boto3.client("s3", config=cfg, endpoint_url=(endpoint_url or None))
        self.s3 = client

    def _key(self, key: str) -> str:
        key = (key or "").lstrip("/")
        if self.prefix:
            return f"{self.prefix}{key}"
        return key

    def put_object_if_absent(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> bool:
        kwargs: Dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": self._key(key),
            "Body": data,
            "ContentType": content_type or "application/octet-stream",
            "IfNoneMatch": "*",
        }
        if metadata:
            # S3 metadata keys must be strings
            kwargs["Metadata"] = {str(kk): str(vv) for kk, vv in metadata.items()}
        try:
            self.s3.put_object(**kwargs)
        except ClientError as e:
            if _error_code(e) in _ALREADY_EXISTS_CODES:
                return False
            raise
        return True

    def get_object(self, key: str) -> StorageObject:
        try:
            resp = self.s3.get_object(Bucket=self.bucket, Key=self._key(key))
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                raise FileNotFoundError(key) from e
            raise
        body = resp["Body"]
        try:
            data = body.read()
        finally:
            body.close()
        return StorageObject(
            key=key,
            data=data,
            content_type=resp.get("ContentType") or "application/octet-stream",
            metadata={str(k).lower(): str(v) for k, v in (resp.get("Metadata") or {}).items()},
        )

    def object_exists(self, key: str) -> bool:
        try:
            self.s3.head_object(Bucket=self.bucket, Key=self._key(key))
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return False
            raise
        return True
