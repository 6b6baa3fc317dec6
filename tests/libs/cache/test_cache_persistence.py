from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import pytest

from libs.cache import (
    CacheEntry,
    CachePersistence,
    CacheService,
    FileSlotStorage,
    MemorySlotStorage,
    PersistenceError,
    StorageQuotaExceededError,
)
from libs.config import CacheSettings

SLOT = "birthlink_cache_v1"


def make_cache(storage: Any, clock: Any, **overrides: Any) -> CacheService:
    settings = CacheSettings(**overrides)
    return CacheService(
        settings,
        persistence=CachePersistence(storage, settings.persistence_slot),
        clock=clock,
    )


def test_restart_restores_live_entries_in_order(tmp_path: Path, clock) -> None:
    storage = FileSlotStorage(tmp_path)
    cache = make_cache(storage, clock)
    cache.set("registration:1", {"child": "Esi"}, ttl=10_000)
    cache.set("user:1", ["admin"], ttl=500)
    cache.set("regional_stats:volta", 42, ttl=10_000)
    cache.get("registration:1")

    clock.advance(1000)
    restored = make_cache(FileSlotStorage(tmp_path), clock)

    assert len(restored) == 2
    assert restored.get("user:1") is None
    assert restored.get("registration:1") == {"child": "Esi"}
    assert restored.get("regional_stats:volta") == 42
    top = {item["ttl"] for item in restored.get_detailed_stats()["top_entries"]}
    assert top == {10_000}


def test_disk_layout_is_ordered_key_entry_pairs(tmp_path: Path, clock) -> None:
    cache = make_cache(FileSlotStorage(tmp_path), clock)
    cache.set("a", 1, ttl=100)
    cache.set("b", {"x": True}, ttl=200)
    cache.get("a")

    payload = json.loads((tmp_path / f"{SLOT}.json").read_text(encoding="utf-8"))

    assert [key for key, _ in payload] == ["a", "b"]
    assert payload[1][1] == {
        "data": {"x": True},
        "timestamp": clock.now,
        "ttl": 200,
        "version": "1.0.0",
        "hits": 0,
    }


@pytest.mark.parametrize(
    "blob",
    [
        "{not json",
        "{}",
        "[[1, 2, 3]]",
        "",
        '[["k", {"data": 1, "timestamp": Infinity, "ttl": 1}]]',
        '[["k", {"data": 1, "timestamp": 1e400, "ttl": 1}]]',
        '[["k", {"data": 1, "timestamp": 0, "ttl": NaN}]]',
    ],
)
def test_corrupt_blob_starts_empty(blob: str, clock, caplog: pytest.LogCaptureFixture) -> None:
    storage = MemorySlotStorage()
    storage.set_item(SLOT, blob)
    caplog.set_level(logging.DEBUG)

    cache = make_cache(storage, clock)

    assert len(cache) == 0
    cache.set("a", 1)
    assert cache.get("a") == 1


def test_malformed_pairs_are_skipped(clock) -> None:
    storage = MemorySlotStorage()
    good = CacheEntry(data="ok", timestamp=clock.now, ttl=1000).to_dict()
    storage.set_item(SLOT, json.dumps([["bad", {"ttl": 1}], ["good", good], "junk"]))

    cache = make_cache(storage, clock)

    assert cache.get_many(["bad", "good"]) == {"bad": None, "good": "ok"}


def test_restore_keeps_most_recent_entries_within_capacity(clock) -> None:
    storage = MemorySlotStorage()
    first = make_cache(storage, clock, max_entries=5)
    for index in range(5):
        first.set(f"k{index}", index)

    second = make_cache(storage, clock, max_entries=3)

    assert len(second) == 3
    assert second.get("k0") is None
    assert second.get("k4") == 4


def test_mutations_write_through(clock) -> None:
    storage = MemorySlotStorage()
    cache = make_cache(storage, clock)

    def stored_keys() -> list:
        raw: Optional[str] = storage.get_item(SLOT)
        return [key for key, _ in json.loads(raw)] if raw else []

    cache.set("user:1", 1)
    cache.set("user:2", 2)
    cache.set("order:1", 3)
    assert stored_keys() == ["user:1", "user:2", "order:1"]

    cache.delete("order:1")
    assert stored_keys() == ["user:1", "user:2"]

    cache.delete_pattern("user:*")
    assert stored_keys() == []

    cache.set("a", 1)
    cache.clear()
    assert storage.get_item(SLOT) is None


def test_sweep_persists_removals(clock) -> None:
    storage = MemorySlotStorage()
    cache = make_cache(storage, clock)
    cache.set("short", 1, ttl=10)
    cache.set("long", 2, ttl=10_000)
    clock.advance(100)

    assert cache.purge_expired() == 1
    assert [key for key, _ in json.loads(storage.get_item(SLOT) or "[]")] == ["long"]


def test_quota_failure_evicts_oldest_and_retries(clock, caplog: pytest.LogCaptureFixture) -> None:
    storage = MemorySlotStorage(quota_bytes=300)
    cache = make_cache(storage, clock)
    caplog.set_level(logging.WARNING)

    cache.set("a", "x" * 60)
    cache.set("b", "y" * 60)
    cache.set("c", "z" * 60)

    persisted = [key for key, _ in json.loads(storage.get_item(SLOT) or "[]")]
    assert persisted == ["b", "c"]
    assert cache.get("a") is None
    assert cache.get_detailed_stats()["total_evictions"] == 1
    assert "Failed to save cache to persistence" in caplog.text


def test_write_failure_after_retry_degrades_to_memory(clock, caplog: pytest.LogCaptureFixture) -> None:
    class FullStorage(MemorySlotStorage):
        def set_item(self, slot: str, value: str) -> None:
            raise StorageQuotaExceededError("quota exceeded")

    cache = make_cache(FullStorage(), clock)
    caplog.set_level(logging.WARNING)

    cache.set("a", 1)
    cache.set("b", 2)

    assert "Cache persistence failed after retry" in caplog.text
    assert cache.get("b") == 2


def test_unserializable_payload_is_contained(clock) -> None:
    cache = make_cache(MemorySlotStorage(), clock)
    cache.set("ok", 1)
    cache.set("bad", object())

    assert len(cache) == 1
    assert cache.get("ok") is None


def test_file_storage_quota_counts_other_slots(tmp_path: Path) -> None:
    storage = FileSlotStorage(tmp_path, quota_bytes=20)
    storage.set_item("other", "x" * 15)

    with pytest.raises(StorageQuotaExceededError):
        storage.set_item(SLOT, "y" * 10)

    storage.set_item("other", "x" * 5)
    storage.set_item(SLOT, "y" * 10)
    assert storage.get_item(SLOT) == "y" * 10


def test_file_storage_rejects_unsafe_slot_names(tmp_path: Path) -> None:
    persistence = CachePersistence(FileSlotStorage(tmp_path), "../escape")
    with pytest.raises(PersistenceError):
        persistence.save([])
    assert persistence.load(now=0) == []


def test_discard_missing_slot_is_noop(tmp_path: Path) -> None:
    persistence = CachePersistence(FileSlotStorage(tmp_path), SLOT)
    persistence.discard()
    assert persistence.load(now=0) == []


def test_discard_of_unusable_slot_is_contained(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    persistence = CachePersistence(FileSlotStorage(tmp_path), "tenant/a")

    persistence.discard()

    assert "Failed to remove cache slot tenant/a" in caplog.text


def test_clear_survives_storage_fault(clock) -> None:
    class BrokenStorage(MemorySlotStorage):
        def remove_item(self, slot: str) -> None:
            raise ValueError("medium unavailable")

    cache = make_cache(BrokenStorage(), clock)
    cache.set("a", 1)

    cache.clear()

    assert len(cache) == 0


def test_deeply_nested_payload_is_contained(clock) -> None:
    nested: Any = "leaf"
    for _ in range(100_000):
        nested = [nested]
    cache = make_cache(MemorySlotStorage(), clock, enable_analytics=False)
    cache.set("ok", 1)

    cache.set("deep", nested)

    assert len(cache) == 1
    assert cache.get("ok") is None
    assert cache.get_stats().total_entries == 1
