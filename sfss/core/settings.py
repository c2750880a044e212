from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sfss.core.config import (
    DEFAULT_HLJS_URL,
    DEFAULT_LABEL,
    DEFAULT_LOCAL_STORAGE_DIR,
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_TITLE,
    DEFAULT_URL,
    DEFAULT_WEBROOT,
    LANGUAGES_PATH,
)

logger = logging.getLogger(__name__)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else str(v)


def _env_int(name: str, default: int) -> int:
    raw = _env(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("[Settings] ignoring non-integer %s=%r", name, raw)
        return default


def _split_csv(value: str) -> List[str]:
    return [x.strip() for x in (value or "").split(",") if x.strip()]


# ---------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class AppSettings:
    """
    Presentation settings consumed by the HTML layer.

    webroot is always normalized to start and end with "/" so share URLs
    can be built as url + webroot + code.
    """
    title: str
    label: str
    webroot: str
    url: str
    hljs_url: str
    languages: Tuple[str, ...]
    # Local highlight.js bundle served at /hljs.js; None redirects to hljs_url.
    hljs_path: Optional[str] = None

    def share_url(self, code: str) -> str:
        return f"{self.url}{self.webroot}{code}"


@dataclass(frozen=True)
class LimitsSettings:
    max_upload_bytes: int


@dataclass(frozen=True)
class StorageSettings:
    """
    Storage provider configuration.

    provider:
      - "local"  -> LocalFilesStorageProvider (default, durable)
      - "s3"     -> S3StorageProvider (boto3; S3-compatible via endpoint_url)
      - "minio"  -> MinioStorageProvider
      - "memory" -> InMemoryStorageProvider (dev/tests only, not durable)
    """
    provider: str

    # Local
    local_dir: str = DEFAULT_LOCAL_STORAGE_DIR

    # S3
    s3_bucket: str = ""
    s3_prefix: str = ""
    s3_endpoint_url: str = ""
    s3_region: str = ""

    # MinIO
    minio_endpoint: str = "http://minio:9000"
    minio_bucket: str = "sfss"
    minio_access_key: str = ""
    minio_secret_key: str = ""


@dataclass(frozen=True)
class Settings:
    app: AppSettings
    limits: LimitsSettings
    storage: StorageSettings
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


# ---------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------

def normalize_webroot(raw: str) -> str:
    root = "/" + (raw or "").strip().strip("/")
    if not root.endswith("/"):
        root = root + "/"
    return root


def load_languages(path: str = LANGUAGES_PATH) -> Tuple[str, ...]:
    override = _split_csv(_env("SFSS_LANGUAGES", ""))
    if override:
        return tuple(override)
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    if not isinstance(raw, list):
        raise ValueError(f"Language list at {path} must be a JSON array")
    return tuple(str(x) for x in raw if str(x).strip())


def _load_hljs_path() -> Optional[str]:
    path = _env("SFSS_HLJS_PATH", "").strip()
    if not path:
        return None
    if not os.path.isfile(path):
        logger.warning("[Settings] SFSS_HLJS_PATH=%r is not a file; falling back to SFSS_HLJS_URL", path)
        return None
    return path


def _load_app_settings() -> AppSettings:
    return AppSettings(
        title=(_env("SFSS_TITLE", "") or DEFAULT_TITLE).strip(),
        label=(_env("SFSS_LABEL", "") or DEFAULT_LABEL).strip(),
        webroot=normalize_webroot(_env("SFSS_ROOT", DEFAULT_WEBROOT)),
        url=(_env("SFSS_URL", "") or DEFAULT_URL).strip().rstrip("/"),
        hljs_url=(_env("SFSS_HLJS_URL", "") or DEFAULT_HLJS_URL).strip(),
        languages=load_languages(),
        hljs_path=_load_hljs_path(),
    )


def _load_limits_settings() -> LimitsSettings:
    max_upload_bytes = _env_int("SFSS_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
    return LimitsSettings(max_upload_bytes=max(1, max_upload_bytes))


def _normalize_storage_provider(raw: str) -> str:
    v = (raw or "").strip().lower()
    if v in ("s3", "aws", "object_store", "objectstore"):
        return "s3"
    if v == "minio":
        return "minio"
    if v in ("memory", "mem", "inmemory"):
        return "memory"
    if v in ("local", "file", "files", "filesystem"):
        return "local"
    logger.warning("[Settings] unknown storage provider %r, falling back to local", raw)
    return "local"


def _load_storage_settings() -> StorageSettings:
    """
    Storage precedence (DO NOT break this):
      1) STORAGE_MODE (deployment/runtime truth)  <-- must win
      2) STORAGE_PROVIDER (legacy override)
      3) default local
    """
    raw_mode = (_env("STORAGE_MODE", "") or "").strip()
    raw_provider = (_env("STORAGE_PROVIDER", "") or "").strip()
    provider = _normalize_storage_provider(raw_mode or raw_provider or "local")

    local_dir = (_env("STORAGE_LOCAL_DIR", "") or _env("LOCAL_STORAGE_DIR", "") or DEFAULT_LOCAL_STORAGE_DIR).strip()

    return StorageSettings(
        provider=provider,
        local_dir=local_dir,
        s3_bucket=_env("S3_BUCKET", "").strip(),
        s3_prefix=_env("S3_PREFIX", "").strip(),
        s3_endpoint_url=_env("S3_ENDPOINT_URL", "").strip(),
        s3_region=(_env("AWS_REGION", "") or _env("AWS_DEFAULT_REGION", "")).strip(),
        minio_endpoint=(_env("MINIO_ENDPOINT", "") or "http://minio:9000").strip().rstrip("/"),
        minio_bucket=(_env("MINIO_BUCKET", "") or "sfss").strip(),
        minio_access_key=_env("MINIO_ACCESS_KEY", "").strip(),
        minio_secret_key=_env("MINIO_SECRET_KEY", "").strip(),
    )


def load_settings() -> Settings:
    """
    Build the process configuration from the environment.

    Called once at startup; the result is attached to app.state and passed
    down explicitly, never cached at module level.
    """
    return Settings(
        app=_load_app_settings(),
        limits=_load_limits_settings(),
        storage=_load_storage_settings(),
        log_level=(_env("LOG_LEVEL", "") or "INFO").strip().upper(),
        host=(_env("SFSS_HOST", "") or "0.0.0.0").strip(),
        port=_env_int("SFSS_PORT", 8000),
    )
