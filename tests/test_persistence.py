"""Tests for persistence adapters."""

from pathlib import Path

import pytest

from mentora.memory.persistence import InMemoryPersistence, SQLitePersistence


@pytest.fixture
async def sqlite_store(tmp_path: Path):
    """Create a temporary SQLite persistence store."""
    store = SQLitePersistence(tmp_path / "test.db")
    await store.connect()
    yield store
    await store.close()


@pytest.fixture(params=["memory", "sqlite"])
async def port(request, tmp_path: Path):
    if request.param == "memory":
        yield InMemoryPersistence()
        return
    store = SQLitePersistence(tmp_path / "port.db")
    await store.connect()
    yield store
    await store.close()


@pytest.mark.asyncio
async def test_get_missing_returns_none(port):
    assert await port.get("missing") is None


@pytest.mark.asyncio
async def test_set_and_get_roundtrip(port):
    """JSON values survive storage unchanged, including non-ASCII text."""
    value = {"name": "Ana", "topics": ["variável", "função"], "count": 3}
    await port.set("profile:u1", value)
    assert await port.get("profile:u1") == value


@pytest.mark.asyncio
async def test_set_overwrites(port):
    await port.set("k", {"v": 1})
    await port.set("k", {"v": 2})
    assert await port.get("k") == {"v": 2}


@pytest.mark.asyncio
async def test_delete_is_idempotent(port):
    await port.set("k", 1)
    await port.delete("k")
    await port.delete("k")
    assert await port.get("k") is None


@pytest.mark.asyncio
async def test_list_keys_with_prefix(port):
    await port.set("session:u1:a", 1)
    await port.set("session:u1:b", 2)
    await port.set("session:u10:a", 3)
    await port.set("profile:u1", 4)

    assert await port.list_keys_with_prefix("session:u1:") == ["session:u1:a", "session:u1:b"]
    assert len(await port.list_keys_with_prefix("session:")) == 3


@pytest.mark.asyncio
async def test_sqlite_prefix_is_literal(sqlite_store: SQLitePersistence):
    """Wildcard characters and case in prefixes are matched literally."""
    await sqlite_store.set("session:a_b:1", 1)
    await sqlite_store.set("session:axb:1", 2)
    await sqlite_store.set("session:A_B:1", 3)

    assert await sqlite_store.list_keys_with_prefix("session:a_b:") == ["session:a_b:1"]


@pytest.mark.asyncio
async def test_in_memory_returns_copies():
    port = InMemoryPersistence()
    await port.set("k", {"items": [1]})
    value = await port.get("k")
    value["items"].append(2)
    assert await port.get("k") == {"items": [1]}


@pytest.mark.asyncio
async def test_sqlite_persists_across_connections(tmp_path: Path):
    path = tmp_path / "durable.db"
    first = SQLitePersistence(path)
    await first.connect()
    await first.set("k", {"v": 1})
    await first.close()

    second = SQLitePersistence(path)
    await second.connect()
    assert await second.get("k") == {"v": 1}
    await second.close()


def test_sqlite_requires_connect(tmp_path: Path):
    store = SQLitePersistence(tmp_path / "x.db")
    with pytest.raises(RuntimeError):
        _ = store.conn
