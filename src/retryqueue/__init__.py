"""Persistent at-least-once retry queue backed by a document store."""

from __future__ import annotations

from retryqueue.core.exceptions import FailRecord, RetryQueueError, SkipRecord, StoreError
from retryqueue.models.outcomes import Fail, Skip
from retryqueue.models.record import BatchSummary, QueueRecord, RecordStatus, StatusCount
from retryqueue.queue import RetryQueue, create_queue

__version__ = "0.1.0"

__all__ = [
    "BatchSummary",
    "Fail",
    "FailRecord",
    "QueueRecord",
    "RecordStatus",
    "RetryQueue",
    "RetryQueueError",
    "SkipRecord",
    "StatusCount",
    "StoreError",
    "Skip",
    "create_queue",
]
