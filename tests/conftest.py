from __future__ import annotations

from typing import Any, Dict, List, Tuple

import pytest


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: int = 0) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingAnalytics:
    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def track_event(self, name: str, params: Dict[str, Any]) -> None:
        self.events.append((name, params))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(start=1_700_000_000_000)


@pytest.fixture()
def analytics() -> RecordingAnalytics:
    return RecordingAnalytics()
