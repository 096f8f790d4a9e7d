"""Queue record, lifecycle status, and reporting models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RecordStatus(StrEnum):
    RECEIVED = "received"
    FAILED = "failed"
    SKIPPED = "skipped"
    PROCESSED = "processed"
    NOTIFIED = "notified"
    NOTIFY_FAILURE = "notifyFailure"

    @property
    def is_processable(self) -> bool:
        return self in PROCESSABLE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]

    def can_transition_to(self, target: RecordStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self]


PROCESSABLE_STATUSES: tuple[RecordStatus, ...] = (
    RecordStatus.RECEIVED,
    RecordStatus.FAILED,
    RecordStatus.SKIPPED,
)

_RETRYABLE_TARGETS = frozenset({
    RecordStatus.PROCESSED,
    RecordStatus.FAILED,
    RecordStatus.SKIPPED,
})

# Automatic transitions only. Reset is a maintenance override and bypasses this.
ALLOWED_TRANSITIONS: dict[RecordStatus, frozenset[RecordStatus]] = {
    RecordStatus.RECEIVED: _RETRYABLE_TARGETS,
    RecordStatus.FAILED: _RETRYABLE_TARGETS | {RecordStatus.NOTIFIED, RecordStatus.NOTIFY_FAILURE},
    RecordStatus.SKIPPED: _RETRYABLE_TARGETS | {RecordStatus.NOTIFIED, RecordStatus.NOTIFY_FAILURE},
    RecordStatus.PROCESSED: frozenset(),
    RecordStatus.NOTIFIED: frozenset(),
    RecordStatus.NOTIFY_FAILURE: frozenset(),
}


class QueueRecord(BaseModel):
    """One unit of queued work, as stored in the collection.

    Attributes are snake_case; the stored document uses the camelCase aliases
    (``receivedDate``, ``retryCount``...).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    status: RecordStatus = RecordStatus.RECEIVED
    received_date: datetime
    available: Optional[datetime] = None
    processed_date: Optional[datetime] = None
    retry_count: int = 0
    failure_reason: Any = None
    immediate_failure: bool = False
    additional_info: Any = None
    notify_failure_reason: Optional[str] = None
    reset_date: Optional[datetime] = None
    data: Any = None

    def is_available(self, now: datetime) -> bool:
        return self.available is not None and self.available <= now


class StatusCount(BaseModel):
    """Number of records currently holding one status."""

    status: RecordStatus
    count: int = 0


class BatchSummary(BaseModel):
    """Tally of what one batch tick did."""

    selected: int = 0
    processed: int = 0
    skipped: int = 0
    retried: int = 0
    notified: int = 0
    notify_failed: int = 0
    stopped_early: bool = False

    @property
    def attempted(self) -> int:
        return self.processed + self.skipped + self.retried + self.notified + self.notify_failed


class ResetRequest(BaseModel):
    """Body of the admin reset endpoint."""

    ids: list[str] = Field(default_factory=list)
