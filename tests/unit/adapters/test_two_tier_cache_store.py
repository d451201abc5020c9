import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.adapters.secondary.cache.two_tier_cache_store import TwoTierCacheStore
from src.adapters.secondary.storage.in_memory_storage import InMemoryKeyValueStorage
from src.adapters.secondary.storage.json_file_storage import JsonFileKeyValueStorage
from src.domain.cache.value_objects.cache_lookup import CacheHit, CacheMiss
from src.domain.storage.exceptions import StorageError, StorageQuotaExceededError


class FakeClock:
    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemoryKeyValueStorage()


@pytest.fixture
def cache(storage, clock):
    return TwoTierCacheStore(storage, clock=clock)


def test_get_returns_value_until_expiry(cache, clock):
    cache.set("k", {"a": 1}, ttl_ms=1000)

    clock.now += 999
    assert cache.get("k") == {"a": 1}

    clock.now += 1
    assert cache.get("k") is None


def test_set_persists_envelope_under_prefixed_slot(cache, storage, clock):
    cache.set("cards", [1, 2], ttl_ms=500)

    envelope = json.loads(storage.get_item("cache_cards"))
    assert envelope == {"data": [1, 2], "expiresAt": clock.now + 500, "version": "1.0.0"}


def test_delete_removes_from_both_tiers(cache, storage):
    cache.set("k", {"a": 1}, ttl_ms=1000)
    cache.delete("k")

    assert cache.get("k") is None
    assert storage.get_item("cache_k") is None


def test_persistent_hit_is_promoted_into_memory(storage, clock):
    TwoTierCacheStore(storage, clock=clock).set("k", "v", ttl_ms=1000)
    fresh_process = TwoTierCacheStore(storage, clock=clock)

    assert fresh_process.stats().memory_size == 0
    assert fresh_process.get("k") == "v"
    assert fresh_process.stats().memory_size == 1


def test_expired_persistent_entry_is_purged_on_read(storage, clock):
    TwoTierCacheStore(storage, clock=clock).set("k", "v", ttl_ms=10)
    clock.now += 10

    result = TwoTierCacheStore(storage, clock=clock).lookup("k")

    assert result == CacheMiss(reason="expired")
    assert storage.get_item("cache_k") is None


def test_corrupt_persistent_slot_is_a_miss(storage, cache):
    storage.set_item("cache_k", "{not json")

    assert isinstance(cache.lookup("k"), CacheMiss)
    assert storage.get_item("cache_k") is None


def test_cached_none_is_a_hit(cache):
    cache.set("k", None, ttl_ms=1000)

    assert cache.lookup("k") == CacheHit(None)
    assert cache.has("k")
    assert cache.get("k") is None


def test_has_agrees_with_get_staleness(cache, clock):
    cache.set("k", 1, ttl_ms=5)
    assert cache.has("k")

    clock.now += 5
    assert not cache.has("k")


def test_persist_failure_keeps_memory_value_and_drops_stale_slot(clock):
    storage = MagicMock()
    storage.set_item.side_effect = StorageQuotaExceededError("cache_k", 10, 5)
    cache = TwoTierCacheStore(storage, clock=clock)

    cache.set("k", "v", ttl_ms=1000)

    assert cache.get("k") == "v"
    storage.remove_item.assert_called_once_with("cache_k")


def test_storage_read_failure_is_a_miss(clock):
    storage = MagicMock()
    storage.get_item.side_effect = StorageError("disk gone")
    cache = TwoTierCacheStore(storage, clock=clock)

    assert cache.get("missing") is None


def test_clear_only_touches_cache_slots(cache, storage):
    storage.set_item("workflow_history", "[]")
    cache.set("a", 1)
    cache.set("b", 2)

    cache.clear()

    assert cache.get("a") is None
    assert cache.get("b") is None
    assert storage.keys() == ["workflow_history"]


def test_stats_report_both_tiers(cache):
    cache.set("a", 1)
    cache.set("b", 2)

    stats = cache.stats()

    assert stats.memory_size == 2
    assert stats.storage_size == 2
    assert sorted(stats.keys) == ["a", "b"]


def test_negative_ttl_is_rejected(cache):
    with pytest.raises(ValueError):
        cache.set("k", 1, ttl_ms=-1)


@pytest.mark.asyncio
async def test_get_or_load_calls_loader_only_on_miss(cache):
    loader = AsyncMock(return_value=["card"])

    first = await cache.get_or_load("cards", loader, ttl_ms=1000)
    second = await cache.get_or_load("cards", loader, ttl_ms=1000)

    assert first == second == ["card"]
    loader.assert_awaited_once()


def test_lookups_are_recorded_per_tier(storage, clock):
    metrics = MagicMock()
    cache = TwoTierCacheStore(storage, clock=clock, metrics=metrics)

    cache.get("k")

    metrics.record_cache_lookup.assert_any_call("memory", "absent")
    metrics.record_cache_lookup.assert_any_call("persistent", "absent")


def test_delete_surfaces_file_storage_failure_and_keeps_value(tmp_path, clock):
    cache = TwoTierCacheStore(JsonFileKeyValueStorage(tmp_path), clock=clock)
    cache.set("k", {"a": 1}, ttl_ms=1000)
    [path] = list(tmp_path.iterdir())
    path.unlink()
    path.mkdir()

    with pytest.raises(StorageError):
        cache.delete("k")

    assert cache.get("k") == {"a": 1}
