"""Shared test doubles: memory store and a controllable clock."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from retryqueue.persistence.memory_backend import MemoryRecordStore

EPOCH = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = EPOCH) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


__all__ = ["EPOCH", "FakeClock", "MemoryRecordStore"]
