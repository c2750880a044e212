import asyncio
import threading

import pytest
from starlette.concurrency import run_in_threadpool

from sfss.objects.repository import ObjectRepository
from sfss.objects.service import ObjectStore
from sfss.providers.impl.storage_local_files import LocalFilesStorageProvider


def test_parallel_ingest_stores_one_copy(memory_store, memory_storage):
    barrier = threading.Barrier(12)
    codes = []

    def worker():
        barrier.wait()
        codes.append(memory_store.ingest(b"identical upload").code)

    threads = [threading.Thread(target=worker) for _ in range(12)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(codes)) == 1
    assert memory_storage.write_count == 1
    assert len(memory_storage.keys()) == 1


def test_separate_processes_sharing_a_root_store_one_copy(tmp_path):
    # Independent repositories do not share locks, like separate worker processes.
    stores = [
        ObjectStore(ObjectRepository(LocalFilesStorageProvider(tmp_path / "data")), max_upload_bytes=1024)
        for _ in range(6)
    ]
    barrier = threading.Barrier(len(stores))
    results = []

    def worker(store):
        barrier.wait()
        results.append(store.ingest(b"shared upload", password="pw"))

    threads = [threading.Thread(target=worker, args=(s,)) for s in stores]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({r.code for r in results}) == 1
    assert sum(1 for r in results if r.created) == 1
    code = results[0].code
    assert [p.name for p in (tmp_path / "data" / "objects" / code[:2]).iterdir()] == [code]
    # Every caller ends up with the same, fully written object.
    assert len({r.object.password for r in results}) == 1


def test_distinct_codes_do_not_share_locks(memory_store):
    repo = memory_store.repository
    with repo._locks.hold("aaaaaaaaaaaaaaaa"):
        # Would deadlock if codes shared one lock.
        assert memory_store.ingest(b"unrelated content").created is True


@pytest.mark.asyncio
async def test_async_ingest_from_threadpool(memory_store, memory_storage):
    results = await asyncio.gather(*(run_in_threadpool(memory_store.ingest, b"async upload") for _ in range(16)))
    assert len({r.code for r in results}) == 1
    assert sum(1 for r in results if r.created) == 1
    assert memory_storage.write_count == 1
