import threading

import pytest

from sfss.objects.errors import ObjectIntegrityError, ObjectNotFoundError, StorageError
from sfss.objects.fingerprint import fingerprint
from sfss.objects.repository import ObjectRepository, object_key
from sfss.providers.impl.storage_local_files import LocalFilesStorageProvider
from sfss.providers.impl.storage_memory import InMemoryStorageProvider
from sfss.providers.storage import StorageObject


class _BrokenStorage:
    def put_object_if_absent(self, key, data, content_type="application/octet-stream", metadata=None):
        raise OSError("disk on fire")

    def get_object(self, key):
        raise OSError("disk on fire")

    def object_exists(self, key):
        raise OSError("disk on fire")


def test_object_key_is_sharded_by_code():
    assert object_key("abcdefghijklmnop") == "objects/ab/abcdefghijklmnop"


def test_put_then_get_round_trip():
    repo = ObjectRepository(InMemoryStorageProvider())
    code = fingerprint(b"hello")
    obj, created = repo.put_if_absent(code, b"hello", "text/plain", password="hash")

    assert created is True
    loaded = repo.get(code)
    assert loaded.content == b"hello"
    assert loaded.content_type == "text/plain"
    assert loaded.password == "hash"
    assert loaded.created_at == obj.created_at


def test_put_if_absent_keeps_first_object():
    storage = InMemoryStorageProvider()
    repo = ObjectRepository(storage)
    code = fingerprint(b"same")
    first, created_first = repo.put_if_absent(code, b"same", "text/plain")
    second, created_second = repo.put_if_absent(code, b"same", "application/json", password="late")

    assert created_first is True
    assert created_second is False
    assert second.content_type == "text/plain"
    assert second.password is None
    assert storage.write_count == 1


def test_get_missing_raises_not_found():
    repo = ObjectRepository(InMemoryStorageProvider())
    with pytest.raises(ObjectNotFoundError) as exc_info:
        repo.get("missingmissing00")
    assert exc_info.value.code == "missingmissing00"


def test_storage_failures_are_not_not_found():
    repo = ObjectRepository(_BrokenStorage())
    with pytest.raises(StorageError) as exc_info:
        repo.get("abcdefghijklmnop")
    assert not isinstance(exc_info.value, ObjectNotFoundError)
    assert "disk on fire" in exc_info.value.reason

    with pytest.raises(StorageError):
        repo.put_if_absent("abcdefghijklmnop", b"x", "text/plain")

    with pytest.raises(StorageError):
        repo.exists("abcdefghijklmnop")


def test_integrity_check_detects_tampering():
    storage = InMemoryStorageProvider()
    repo = ObjectRepository(storage)
    code = fingerprint(b"original")
    repo.put_if_absent(code, b"original", "text/plain")

    key = object_key(code)
    stored = storage._objects[key]
    storage._objects[key] = StorageObject(
        key=key, data=b"corrupted", content_type=stored.content_type, metadata=stored.metadata
    )

    with pytest.raises(ObjectIntegrityError):
        repo.get(code)


def test_metadata_naming_another_code_is_rejected():
    storage = InMemoryStorageProvider()
    repo = ObjectRepository(storage)
    code = fingerprint(b"x")
    storage.put_object_if_absent(object_key(code), b"x", "text/plain", {"code": "somethingelse000"})

    with pytest.raises(StorageError):
        repo.get(code)


def test_objects_survive_reopening_the_store(tmp_path):
    root = tmp_path / "data"
    code = fingerprint(b"persisted")
    ObjectRepository(LocalFilesStorageProvider(root)).put_if_absent(code, b"persisted", "text/plain", "pw-hash")

    reopened = ObjectRepository(LocalFilesStorageProvider(root))
    obj = reopened.get(code)
    assert obj.content == b"persisted"
    assert obj.content_type == "text/plain"
    assert obj.password == "pw-hash"
    assert reopened.exists(code) is True


def test_concurrent_puts_write_once():
    storage = InMemoryStorageProvider()
    repo = ObjectRepository(storage)
    code = fingerprint(b"race")
    barrier = threading.Barrier(8)
    results = []

    def worker():
        barrier.wait()
        results.append(repo.put_if_absent(code, b"race", "text/plain"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert storage.write_count == 1
    assert sum(1 for _, created in results if created) == 1
    assert {obj.content for obj, _ in results} == {b"race"}
    assert len(repo._locks) == 0


class _RefusingStorage(InMemoryStorageProvider):
    def put_object_if_absent(self, key, data, content_type="application/octet-stream", metadata=None):
        return False


def test_refused_write_with_nothing_stored_is_a_storage_error():
    repo = ObjectRepository(_RefusingStorage())
    with pytest.raises(StorageError) as exc_info:
        repo.put_if_absent(fingerprint(b"lost"), b"lost", "text/plain")
    assert not isinstance(exc_info.value, ObjectNotFoundError)


def test_stray_directory_in_local_store_is_a_storage_error(tmp_path):
    root = tmp_path / "data"
    code = fingerprint(b"blocked")
    stray = root / object_key(code)
    stray.mkdir(parents=True)
    (stray / "leftover").write_bytes(b"junk")

    with pytest.raises(StorageError, match="without meta.json"):
        ObjectRepository(LocalFilesStorageProvider(root)).put_if_absent(code, b"blocked", "text/plain")
