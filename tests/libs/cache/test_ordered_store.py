from __future__ import annotations

from libs.cache import CacheEntry, OrderedStore, compile_pattern


def _entry(value: int, ts: int = 0, ttl: int = 1000) -> CacheEntry[int]:
    return CacheEntry(data=value, timestamp=ts, ttl=ttl)


def test_evict_oldest_follows_insertion_order() -> None:
    store = OrderedStore()
    store.put("a", _entry(1))
    store.put("b", _entry(2))
    store.put("c", _entry(3))

    key, entry = store.evict_oldest()  # type: ignore[misc]
    assert key == "a"
    assert entry.data == 1
    assert list(store) == ["b", "c"]


def test_touch_moves_to_end_and_counts_hit() -> None:
    store = OrderedStore()
    store.put("a", _entry(1))
    store.put("b", _entry(2))

    touched = store.touch("a")

    assert touched.hits == 1
    assert list(store) == ["b", "a"]


def test_put_existing_key_refreshes_position() -> None:
    store = OrderedStore()
    store.put("a", _entry(1))
    store.put("b", _entry(2))
    store.put("a", _entry(10))

    assert list(store) == ["b", "a"]
    assert store.peek("a").data == 10  # type: ignore[union-attr]


def test_evict_oldest_on_empty_store_returns_none() -> None:
    assert OrderedStore().evict_oldest() is None


def test_matching_uses_anchored_glob() -> None:
    store = OrderedStore()
    for key in ("user:1", "user:2", "order:1", "superuser:3"):
        store.put(key, _entry(0))

    assert store.matching(compile_pattern("user:*")) == ["user:1", "user:2"]
    assert store.matching(compile_pattern("*:1")) == ["user:1", "order:1"]


def test_expired_lists_only_stale_entries() -> None:
    store = OrderedStore()
    store.put("fresh", _entry(1, ts=1000, ttl=500))
    store.put("stale", _entry(2, ts=0, ttl=500))

    assert store.expired(now=1200) == ["stale"]
