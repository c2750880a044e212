from __future__ import annotations

import logging
from dataclasses import dataclass

from sfss.core.settings import Settings, StorageSettings
from sfss.objects.repository import ObjectRepository
from sfss.objects.service import ObjectStore
from sfss.providers.storage import StorageProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Providers:
    """
    Central container for runtime collaborators, built once at startup.
    """
    settings: Settings
    storage: StorageProvider
    store: ObjectStore


def build_storage(settings: StorageSettings) -> StorageProvider:
    provider = settings.provider

    if provider == "s3":
        from sfss.providers.impl.storage_s3 import S3StorageProvider

        return S3StorageProvider(
            bucket=settings.s3_bucket,
            prefix=settings.s3_prefix,
            region=settings.s3_region or None,
            endpoint_url=settings.s3_endpoint_url or None,
        )

    if provider == "minio":
        from sfss.providers.impl.storage_minio import MinioStorageProvider

        if not settings.minio_access_key or not settings.minio_secret_key:
            raise RuntimeError("MINIO_ACCESS_KEY / MINIO_SECRET_KEY not set")
        return MinioStorageProvider(
            endpoint=settings.minio_endpoint,
            bucket=settings.minio_bucket,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            # Derive secure from scheme (best-effort)
            secure=settings.minio_endpoint.lower().startswith("https://"),
        )

    if provider == "memory":
        from sfss.providers.impl.storage_memory import InMemoryStorageProvider

        logger.warning("[Providers] in-memory storage selected; objects will not survive a restart")
        return InMemoryStorageProvider()

    from sfss.providers.impl.storage_local_files import LocalFilesStorageProvider

    return LocalFilesStorageProvider(settings.local_dir)


def build_providers(settings: Settings, storage: StorageProvider | None = None) -> Providers:
    """
    Wire storage -> repository -> store for one process.

    storage may be injected (tests, embedding); otherwise it is chosen from settings.
    """
    if storage is None:
        storage = build_storage(settings.storage)
    logger.info(
        "[Providers] storage=%s max_upload_bytes=%s",
        type(storage).__name__,
        settings.limits.max_upload_bytes,
    )
    store = ObjectStore(
        repository=ObjectRepository(storage),
        max_upload_bytes=settings.limits.max_upload_bytes,
    )
    return Providers(settings=settings, storage=storage, store=store)
