"""Concurrency tests for BlocklistStore."""

import threading
from concurrent.futures import ThreadPoolExecutor

from blocklist_api.blocklist.errors import NotFoundError
from blocklist_api.blocklist.manager import BlocklistEntry, BlocklistStore

N = 200


def test_concurrent_adds_of_distinct_addresses():
    """N parallel adds of distinct addresses yield exactly N entries."""
    store = BlocklistStore(lock_timeout=5)
    ips = [f"10.0.{i // 256}.{i % 256}" for i in range(N)]

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(store.add, ips))

    snapshot = store.list()
    assert all(created for _, created in results)
    assert len(snapshot) == N
    assert sorted(snapshot.addresses()) == sorted(ips)
    assert snapshot.version == N


def test_concurrent_adds_of_same_address():
    """Exactly one racing add creates the entry; the rest see idempotent success."""
    store = BlocklistStore(lock_timeout=5)
    barrier = threading.Barrier(16)

    def add(ip):
        barrier.wait()
        return store.add(ip)

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(add, ["::1"] * 8 + ["0:0:0:0:0:0:0:1"] * 8))

    assert sum(created for _, created in results) == 1
    assert len({entry for entry, _ in results}) == 1
    assert store.list().addresses() == ["::1"]


def test_concurrent_add_remove_same_address():
    """Racing add/remove pairs never leave a torn entry behind."""
    store = BlocklistStore(lock_timeout=5)
    stop = threading.Event()
    observed = []

    def churn():
        for _ in range(N):
            store.add("192.0.2.1")
            try:
                store.remove("192.0.2.1")
            except NotFoundError:
                pass

    def read():
        while not stop.is_set():
            observed.append(store.list())

    reader = threading.Thread(target=read)
    reader.start()
    with ThreadPoolExecutor(max_workers=8) as pool:
        for future in [pool.submit(churn) for _ in range(8)]:
            future.result()
    stop.set()
    reader.join()

    observed.append(store.list())
    for snapshot in observed:
        assert len(snapshot) <= 1
        for entry in snapshot:
            assert isinstance(entry, BlocklistEntry)
            assert entry.address == "192.0.2.1"
            assert entry.added_at is not None
    assert store.list().addresses() in ([], ["192.0.2.1"])


def test_versions_are_monotonic_across_readers():
    store = BlocklistStore(lock_timeout=5)
    versions = []

    def worker(i):
        store.add(f"198.51.100.{i}")
        versions.append(store.list().version)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(worker, range(100)))

    assert store.version == 100
    assert max(versions) == 100
