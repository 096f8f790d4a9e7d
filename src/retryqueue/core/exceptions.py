"""RetryQueue exception hierarchy."""

from __future__ import annotations

from typing import Any


class RetryQueueError(Exception):
    """Base exception for all RetryQueue errors."""


class StoreError(RetryQueueError):
    """Record store operation failed."""


class IllegalTransitionError(RetryQueueError):
    """A record was asked to move between statuses the lifecycle forbids."""

    def __init__(self, current: str, target: str, record_id: str | None = None) -> None:
        self.current = current
        self.target = target
        self.record_id = record_id
        super().__init__(f"Illegal status transition {current} -> {target} for record {record_id}")


class HandlerSignal(RetryQueueError):
    """Base for control signals a handler raises instead of returning."""


class SkipRecord(HandlerSignal):
    """Defer the record without counting a retry."""

    def __init__(self, delay_ms: int = 0) -> None:
        self.delay_ms = delay_ms
        super().__init__(f"Skip record for {delay_ms}ms")


class FailRecord(HandlerSignal):
    """Fail the record now; it will not be retried."""

    def __init__(self, reason: Any = None) -> None:
        self.reason = reason
        super().__init__(f"Fail record: {reason}")
