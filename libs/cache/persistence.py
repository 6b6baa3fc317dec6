"""Durable snapshot of the cache kept in a single named slot.

The medium is modelled after browser local storage: a shared key/value area
where each slot holds one serialized string. The cache owns exactly one slot
and never touches the others.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from .entry import CacheEntry

logger = logging.getLogger(__name__)

_SLOT_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")


class PersistenceError(RuntimeError):
    """Raised when the snapshot cannot be serialized or written."""


class StorageQuotaExceededError(PersistenceError):
    """Raised when a write would exceed the medium's capacity."""


class SlotStorage(Protocol):
    def get_item(self, slot: str) -> Optional[str]: ...

    def set_item(self, slot: str, value: str) -> None: ...

    def remove_item(self, slot: str) -> None: ...


class MemorySlotStorage:
    """Process-local slot storage with an optional byte quota."""

    def __init__(self, *, quota_bytes: Optional[int] = None) -> None:
        self.quota_bytes = quota_bytes
        self._slots: Dict[str, str] = {}

    def get_item(self, slot: str) -> Optional[str]:
        return self._slots.get(slot)

    def set_item(self, slot: str, value: str) -> None:
        if self.quota_bytes is not None:
            used = sum(
                len(text.encode("utf-8"))
                for name, text in self._slots.items()
                if name != slot
            )
            if used + len(value.encode("utf-8")) > self.quota_bytes:
                raise StorageQuotaExceededError(
                    f"slot {slot!r} exceeds quota of {self.quota_bytes} bytes"
                )
        self._slots[slot] = value

    def remove_item(self, slot: str) -> None:
        self._slots.pop(slot, None)


class FileSlotStorage:
    """Slot storage backed by one JSON file per slot in a shared directory."""

    def __init__(self, root: Path, *, quota_bytes: Optional[int] = None) -> None:
        self.root = Path(root)
        self.quota_bytes = quota_bytes

    def _path(self, slot: str) -> Path:
        if not _SLOT_NAME.match(slot):
            raise ValueError(f"invalid slot name: {slot!r}")
        return self.root / f"{slot}.json"

    def get_item(self, slot: str) -> Optional[str]:
        path = self._path(slot)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set_item(self, slot: str, value: str) -> None:
        path = self._path(slot)
        payload = value.encode("utf-8")
        self.root.mkdir(parents=True, exist_ok=True)
        if self.quota_bytes is not None:
            used = sum(
                item.stat().st_size
                for item in self.root.glob("*.json")
                if item.name != path.name
            )
            if used + len(payload) > self.quota_bytes:
                raise StorageQuotaExceededError(
                    f"slot {slot!r} exceeds quota of {self.quota_bytes} bytes"
                )
        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_bytes(payload)
        os.replace(tmp_path, path)

    def remove_item(self, slot: str) -> None:
        try:
            self._path(slot).unlink()
        except FileNotFoundError:
            return


class CachePersistence:
    """Reads and writes the ordered ``[key, entry]`` list of one cache slot."""

    def __init__(self, storage: SlotStorage, slot: str) -> None:
        self.storage = storage
        self.slot = slot

    def load(self, now: int) -> List[Tuple[str, CacheEntry[Any]]]:
        """Return persisted pairs in stored order, skipping expired ones.

        Missing, unreadable or corrupt data yields an empty list.
        """
        try:
            raw = self.storage.get_item(self.slot)
        except Exception as exc:
            logger.warning("Failed to read cache slot %s: %s", self.slot, exc)
            return []
        if not raw:
            return []
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Corrupt cache slot %s: %s", self.slot, exc)
            return []
        if not isinstance(payload, list):
            logger.warning("Ignoring cache slot %s: expected a list", self.slot)
            return []

        restored: List[Tuple[str, CacheEntry[Any]]] = []
        skipped = 0
        for item in payload:
            try:
                key, raw_entry = item
                entry = CacheEntry.from_dict(raw_entry)
            except (TypeError, ValueError, KeyError, OverflowError) as exc:
                logger.debug("Skipping malformed cache pair: %s", exc)
                continue
            if not isinstance(key, str):
                continue
            if entry.is_expired(now):
                skipped += 1
                continue
            restored.append((key, entry))
        logger.debug(
            "Restored %d cache entries from %s (%d expired)",
            len(restored),
            self.slot,
            skipped,
        )
        return restored

    def save(self, items: Iterable[Tuple[str, CacheEntry[Any]]]) -> None:
        try:
            text = serialize(items)
            self.storage.set_item(self.slot, text)
        except PersistenceError:
            raise
        except (OSError, TypeError, ValueError, RecursionError) as exc:
            raise PersistenceError(f"failed to write cache slot {self.slot}: {exc}") from exc

    def discard(self) -> None:
        try:
            self.storage.remove_item(self.slot)
        except Exception as exc:
            logger.warning("Failed to remove cache slot %s: %s", self.slot, exc)


def serialize(items: Iterable[Tuple[str, CacheEntry[Any]]]) -> str:
    return json.dumps(
        [[key, entry.to_dict()] for key, entry in items],
        ensure_ascii=False,
        separators=(",", ":"),
    )


__all__ = [
    "CachePersistence",
    "FileSlotStorage",
    "MemorySlotStorage",
    "PersistenceError",
    "SlotStorage",
    "StorageQuotaExceededError",
    "serialize",
]
