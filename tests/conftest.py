from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from sfss.core.settings import AppSettings, LimitsSettings, Settings, StorageSettings
from sfss.main import create_app
from sfss.objects import gate
from sfss.objects.repository import ObjectRepository
from sfss.objects.service import ObjectStore
from sfss.providers.impl.storage_local_files import LocalFilesStorageProvider
from sfss.providers.impl.storage_memory import InMemoryStorageProvider

MAX_UPLOAD_BYTES = 1024


@pytest.fixture(autouse=True)
def _fast_password_hashing(monkeypatch):
    # Production iteration counts make every hashed upload take ~100ms.
    monkeypatch.setattr(gate, "PBKDF2_ITERATIONS", 1_000)


def make_settings(tmp_path: Path, max_upload_bytes: int = MAX_UPLOAD_BYTES, provider: str = "memory") -> Settings:
    return Settings(
        app=AppSettings(
            title="SFSS Test",
            label="test instance",
            webroot="/",
            url="http://testserver",
            hljs_url="https://cdn.example/hljs.js",
            languages=("python", "rust", "plaintext"),
        ),
        limits=LimitsSettings(max_upload_bytes=max_upload_bytes),
        storage=StorageSettings(provider=provider, local_dir=str(tmp_path / "data")),
    )


@pytest.fixture
def memory_storage() -> InMemoryStorageProvider:
    return InMemoryStorageProvider()


@pytest.fixture
def memory_store(memory_storage) -> ObjectStore:
    return ObjectStore(ObjectRepository(memory_storage), max_upload_bytes=MAX_UPLOAD_BYTES)


@pytest.fixture
def local_storage(tmp_path) -> LocalFilesStorageProvider:
    return LocalFilesStorageProvider(tmp_path / "data")


@pytest.fixture
def local_store(local_storage) -> ObjectStore:
    return ObjectStore(ObjectRepository(local_storage), max_upload_bytes=MAX_UPLOAD_BYTES)


@pytest.fixture(params=["memory", "local"])
def store(request, tmp_path) -> ObjectStore:
    if request.param == "memory":
        storage = InMemoryStorageProvider()
    else:
        storage = LocalFilesStorageProvider(tmp_path / "data")
    return ObjectStore(ObjectRepository(storage), max_upload_bytes=MAX_UPLOAD_BYTES)


@pytest.fixture
def client(tmp_path, memory_storage) -> TestClient:
    app = create_app(make_settings(tmp_path), storage=memory_storage)
    return TestClient(app)
