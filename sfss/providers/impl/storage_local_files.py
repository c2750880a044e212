from __future__ import annotations

import errno
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional

from sfss.providers.storage import StorageObject, StorageProvider

logger = logging.getLogger(__name__)

_CONTENT_NAME = "content"
_META_NAME = "meta.json"
_STAGING_PREFIX = ".staging-"


def _write_synced(path: Path, data: bytes) -> None:
    with open(path, "wb") as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())


def _fsync_dir(path: Path) -> None:
    # Directory fsync is not available everywhere (e.g. Windows).
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


class LocalFilesStorageProvider(StorageProvider):
    """
    Local filesystem storage provider.

    Each key maps to a directory holding the payload and a JSON sidecar:

        <root>/<key>/content
        <root>/<key>/meta.json

    Writes go to a staging directory next to the target and are published
    with a single rename, so a key is either fully present or absent. A
    rename onto an existing object fails, which makes the write
    put-if-absent across processes as well as threads.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, key: str) -> Path:
        safe = (key or "").strip().lstrip("/")
        if not safe:
            raise ValueError("Storage key must not be empty")
        root = self._root.resolve()
        candidate = (self._root / safe).resolve()
        if candidate == root or not candidate.is_relative_to(root):
            raise ValueError(f"Storage key {key!r} resolves outside store root")
        if any(part.startswith(_STAGING_PREFIX) for part in candidate.relative_to(root).parts):
            raise ValueError(f"Storage key {key!r} uses a reserved name")
        return candidate

    def put_object_if_absent(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> bool:
        target = self._path(key)
        if (target / _META_NAME).exists():
            return False

        target.parent.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=_STAGING_PREFIX, dir=target.parent))
        try:
            sidecar = {
                "content_type": content_type or "application/octet-stream",
                "metadata": {str(k): str(v) for k, v in (metadata or {}).items()},
            }
            _write_synced(staging / _CONTENT_NAME, data)
            _write_synced(staging / _META_NAME, json.dumps(sidecar, ensure_ascii=False).encode("utf-8"))
            try:
                os.rename(staging, target)
            except OSError as exc:
                if isinstance(exc, FileExistsError) or exc.errno in (errno.EEXIST, errno.ENOTEMPTY):
                    if not (target / _META_NAME).is_file():
                        # Occupied by something that is not a published object.
                        raise OSError(exc.errno, f"key={key} is blocked by a directory without {_META_NAME}") from exc
                    logger.info("[LocalFiles] lost publish race for key=%s; keeping existing object", key)
                    return False
                raise
            _fsync_dir(target.parent)
            return True
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)

    def get_object(self, key: str) -> StorageObject:
        target = self._path(key)
        meta_path = target / _META_NAME
        if not meta_path.is_file():
            raise FileNotFoundError(key)

        sidecar = json.loads(meta_path.read_text(encoding="utf-8"))
        if not isinstance(sidecar, dict):
            raise ValueError(f"Malformed metadata sidecar for key={key}")
        data = (target / _CONTENT_NAME).read_bytes()
        raw_meta = sidecar.get("metadata") or {}
        return StorageObject(
            key=key,
            data=data,
            content_type=str(sidecar.get("content_type") or "application/octet-stream"),
            metadata={str(k): str(v) for k, v in raw_meta.items()},
        )

    def object_exists(self, key: str) -> bool:
        return (self._path(key) / _META_NAME).is_file()
