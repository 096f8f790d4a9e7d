"""Terminal failure notification."""

from __future__ import annotations

from typing import Any, Callable

from retryqueue.core.exceptions import IllegalTransitionError
from retryqueue.core.logging import get_logger
from retryqueue.core.protocols import IRecordStore
from retryqueue.core.types import Clock
from retryqueue.models.outcomes import RecordResult, describe_error
from retryqueue.models.record import QueueRecord, RecordStatus

logger = get_logger(__name__)


class TerminalNotifier:
    """Hand a permanently failed record to ``on_failure`` exactly once.

    A failing hook is not retried: the record is parked in ``notifyFailure``
    with the hook's error, and the failure is only visible in the logs and the
    stored record.
    """

    def __init__(self, store: IRecordStore, on_failure: Callable[[QueueRecord], Any], clock: Clock) -> None:
        self._store = store
        self._on_failure = on_failure
        self._clock = clock

    def notify(self, record: QueueRecord) -> RecordResult:
        try:
            self._on_failure(record)
        except Exception as exc:
            reason = describe_error(exc)
            logger.error("notify_failure", record_id=record.id, error=str(exc))
            return self._finish(record, RecordStatus.NOTIFY_FAILURE, {"notifyFailureReason": reason})

        logger.info("record_notified", record_id=record.id, retry_count=record.retry_count)
        return self._finish(record, RecordStatus.NOTIFIED, {})

    def _finish(self, record: QueueRecord, status: RecordStatus, extra: dict[str, Any]) -> RecordResult:
        if not record.status.can_transition_to(status):
            raise IllegalTransitionError(record.status, status, record.id)
        self._store.update_one(
            record.id,
            {"status": status.value, "processedDate": self._clock(), **extra},
            unset_fields=("available",),
        )
        if status == RecordStatus.NOTIFIED:
            return RecordResult.NOTIFIED
        return RecordResult.NOTIFY_FAILED
