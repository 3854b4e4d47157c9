"""Tests for storage backends."""

import pytest

from cipherledger.core.exceptions import ConfigurationError
from cipherledger.storage import (
    InMemoryStorage,
    RedisStorage,
    get_storage,
    list_storage_backends,
)


@pytest.fixture
def memory_storage():
    return InMemoryStorage()


@pytest.mark.asyncio
async def test_save_and_get_returns_copy(memory_storage):
    await memory_storage.save("entries", "e1", {"id": "e1", "tags": ["a"]})

    data = await memory_storage.get("entries", "e1")
    data["tags"].append("mutated")

    assert await memory_storage.get("entries", "e1") == {"id": "e1", "tags": ["a"]}


@pytest.mark.asyncio
async def test_get_missing(memory_storage):
    assert await memory_storage.get("entries", "nope") is None


@pytest.mark.asyncio
async def test_query_filters_and_keys(memory_storage):
    await memory_storage.save("entries", "e1", {"verified": True})
    await memory_storage.save("entries", "e2", {"verified": False})

    rows = await memory_storage.query("entries", {"verified": True})
    assert [r["_key"] for r in rows] == ["e1"]
    assert await memory_storage.count("entries", {"verified": False}) == 1
    assert await memory_storage.count("entries") == 2


@pytest.mark.asyncio
async def test_update_merges(memory_storage):
    await memory_storage.save("entries", "e1", {"a": 1, "b": 2})

    assert await memory_storage.update("entries", "e1", {"b": 3}) is True
    assert await memory_storage.get("entries", "e1") == {"a": 1, "b": 3}
    assert await memory_storage.update("entries", "missing", {"b": 3}) is False


@pytest.mark.asyncio
async def test_delete_and_clear(memory_storage):
    await memory_storage.save("entries", "e1", {"a": 1})
    await memory_storage.save("entries", "e2", {"a": 2})

    assert await memory_storage.delete("entries", "e1") is True
    assert await memory_storage.delete("entries", "e1") is False
    assert await memory_storage.clear("entries") == 1


@pytest.mark.asyncio
async def test_lock_is_token_owned(memory_storage):
    token = await memory_storage.acquire_lock("k", ttl=30)
    assert token is not None
    assert await memory_storage.acquire_lock("k", ttl=30) is None

    assert await memory_storage.release_lock("k", "someone-else") is False
    assert await memory_storage.release_lock("k", token) is True
    assert await memory_storage.acquire_lock("k", ttl=30) is not None


@pytest.mark.asyncio
async def test_expired_lock_can_be_taken(memory_storage):
    # A zero TTL expires immediately
    first = await memory_storage.acquire_lock("k", ttl=0)
    second = await memory_storage.acquire_lock("k", ttl=30)

    assert first is not None
    assert second is not None
    assert second != first
    assert await memory_storage.release_lock("k", first) is False


@pytest.mark.asyncio
async def test_empty_record_is_not_missing(memory_storage):
    await memory_storage.save("entries", "e1", {})
    assert await memory_storage.get("entries", "e1") == {}


@pytest.mark.asyncio
async def test_save_many_writes_every_record(memory_storage):
    await memory_storage.save_many(
        [
            ("entries", "e1", {"id": "e1"}),
            ("participants", "alice", {"id": "alice"}),
            ("entry_log", "000000000000", {"entry_id": "e1"}),
        ]
    )

    assert await memory_storage.get("entries", "e1") == {"id": "e1"}
    assert await memory_storage.count("participants") == 1
    assert await memory_storage.count("entry_log") == 1


@pytest.mark.asyncio
async def test_save_many_is_all_or_nothing(memory_storage):
    with pytest.raises(TypeError):
        await memory_storage.save_many(
            [
                ("entries", "e1", {"id": "e1"}),
                ("entry_log", "000000000000", {"stream": (x for x in [])}),
            ]
        )

    assert await memory_storage.count("entries") == 0
    assert await memory_storage.count("entry_log") == 0


@pytest.mark.asyncio
async def test_query_offset_and_limit(memory_storage):
    for i in range(5):
        await memory_storage.save("entries", f"e{i}", {"n": i})

    rows = await memory_storage.query("entries", offset=1, limit=2)
    assert [r["n"] for r in rows] == [1, 2]


class TestRegistry:
    def test_backends_registered(self) -> None:
        names = list_storage_backends()
        assert "memory" in names
        assert "redis" in names

    def test_get_storage_by_name(self) -> None:
        assert isinstance(get_storage("memory"), InMemoryStorage)

    def test_get_storage_passes_options(self) -> None:
        storage = get_storage("redis", redis_url="redis://cache:6379/1", prefix="test")
        assert isinstance(storage, RedisStorage)
        assert storage._redis_url == "redis://cache:6379/1"
        assert storage._make_key("entries", "e1") == "test:entries:e1"

    def test_unknown_backend(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown storage backend"):
            get_storage("etcd")
