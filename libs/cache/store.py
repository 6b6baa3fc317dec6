from __future__ import annotations

from collections import OrderedDict
from typing import Any, Iterator, List, Optional, Pattern, Tuple

from .entry import CacheEntry


class OrderedStore:
    """Access-ordered key/entry mapping, oldest first.

    Backed by an ``OrderedDict`` so touch and evict are O(1). The store holds
    no policy of its own: expiry, capacity and statistics live in
    :class:`libs.cache.service.CacheService`.
    """

    def __init__(self) -> None:
        self._entries: "OrderedDict[str, CacheEntry[Any]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def peek(self, key: str) -> Optional[CacheEntry[Any]]:
        return self._entries.get(key)

    def touch(self, key: str) -> CacheEntry[Any]:
        entry = self._entries[key]
        entry.hits += 1
        self._entries.move_to_end(key, last=True)
        return entry

    def put(self, key: str, entry: CacheEntry[Any]) -> None:
        self._entries[key] = entry
        self._entries.move_to_end(key, last=True)

    def pop(self, key: str) -> Optional[CacheEntry[Any]]:
        return self._entries.pop(key, None)

    def evict_oldest(self) -> Optional[Tuple[str, CacheEntry[Any]]]:
        if not self._entries:
            return None
        return self._entries.popitem(last=False)

    def matching(self, pattern: Pattern[str]) -> List[str]:
        return [key for key in self._entries if pattern.fullmatch(key)]

    def expired(self, now: int) -> List[str]:
        return [key for key, entry in self._entries.items() if entry.is_expired(now)]

    def items(self) -> List[Tuple[str, CacheEntry[Any]]]:
        return list(self._entries.items())

    def clear(self) -> None:
        self._entries.clear()


__all__ = ["OrderedStore"]
