import asyncio
import sqlite3
import stat
import sys

import pytest

from doggocli.domain.models.common import TOKEN_STORAGE_KEY
from doggocli.infrastructure.storage.token_store import DiskTokenStore, InMemoryTokenStore

@pytest.fixture
def disk_store(tmp_path):
    store = DiskTokenStore(tmp_path / "tokens")
    yield store
    store.close()

def test_disk_store_round_trip(disk_store):
    async def scenario():
        assert await disk_store.get(TOKEN_STORAGE_KEY) is None
        await disk_store.set(TOKEN_STORAGE_KEY, "tok-1")
        assert await disk_store.get(TOKEN_STORAGE_KEY) == "tok-1"
        await disk_store.remove(TOKEN_STORAGE_KEY)
        assert await disk_store.get(TOKEN_STORAGE_KEY) is None

    assert disk_store.is_available() is True
    asyncio.run(scenario())

def test_disk_store_survives_restart(tmp_path):
    """Test that a token written by one process is read back by the next."""
    first = DiskTokenStore(tmp_path / "tokens")
    asyncio.run(first.set(TOKEN_STORAGE_KEY, "persisted"))
    first.close()

    second = DiskTokenStore(tmp_path / "tokens")
    try:
        assert asyncio.run(second.get(TOKEN_STORAGE_KEY)) == "persisted"
    finally:
        second.close()

def test_removing_missing_key_is_harmless(disk_store):
    asyncio.run(disk_store.remove(TOKEN_STORAGE_KEY))
    assert asyncio.run(disk_store.get(TOKEN_STORAGE_KEY)) is None

@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_token_directory_is_private(tmp_path):
    """Test that only the owner can enter the directory holding the bearer token."""
    store = DiskTokenStore(tmp_path / "doggocli" / "tokens")
    try:
        mode = stat.S_IMODE((tmp_path / "doggocli" / "tokens").stat().st_mode)
        assert mode == 0o700
    finally:
        store.close()

def test_closed_store_reopens_on_next_use(disk_store):
    asyncio.run(disk_store.set(TOKEN_STORAGE_KEY, "tok-1"))
    disk_store.close()

    assert asyncio.run(disk_store.get(TOKEN_STORAGE_KEY)) == "tok-1"

def test_in_memory_store_close_is_a_no_op():
    store = InMemoryTokenStore({"token": "seeded"})
    store.close()
    assert asyncio.run(store.get(TOKEN_STORAGE_KEY)) == "seeded"

def test_unusable_directory_makes_store_unavailable(tmp_path, mocker):
    mocker.patch("doggocli.infrastructure.storage.token_store.dc.Cache", side_effect=OSError("read-only"))

    store = DiskTokenStore(tmp_path / "tokens")

    assert store.is_available() is False
    asyncio.run(store.set(TOKEN_STORAGE_KEY, "tok-1"))
    assert asyncio.run(store.get(TOKEN_STORAGE_KEY)) is None
    asyncio.run(store.remove(TOKEN_STORAGE_KEY))
    store.close()

def test_storage_errors_are_treated_as_absent(disk_store, mocker):
    mocker.patch.object(disk_store.disk_cache, "get", side_effect=sqlite3.OperationalError("database is locked"))

    assert asyncio.run(disk_store.get(TOKEN_STORAGE_KEY)) is None

def test_in_memory_store():
    store = InMemoryTokenStore({"token": "seeded"})

    async def scenario():
        assert await store.get(TOKEN_STORAGE_KEY) == "seeded"
        await store.set(TOKEN_STORAGE_KEY, "fresh")
        assert await store.get(TOKEN_STORAGE_KEY) == "fresh"
        await store.remove(TOKEN_STORAGE_KEY)
        await store.remove(TOKEN_STORAGE_KEY)
        assert await store.get(TOKEN_STORAGE_KEY) is None

    assert store.is_available() is True
    asyncio.run(scenario())
