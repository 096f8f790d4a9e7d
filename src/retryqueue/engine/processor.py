"""Per-record lifecycle state machine."""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Callable

from retryqueue.core.config import QueueConfig
from retryqueue.core.exceptions import IllegalTransitionError, StoreError
from retryqueue.core.logging import get_logger
from retryqueue.core.protocols import IRecordStore
from retryqueue.core.types import Clock
from retryqueue.engine.backoff import compute_backoff_ms
from retryqueue.engine.notifier import TerminalNotifier
from retryqueue.models.outcomes import (
    Fail,
    RecordResult,
    Skip,
    Success,
    Transient,
    describe_error,
    run_handler,
)
from retryqueue.models.record import QueueRecord, RecordStatus

logger = get_logger(__name__)


class RecordProcessor:
    """Drive one record through the handler and persist exactly one outcome.

    Outcomes map to store mutations as follows:

    - exhausted retries: the handler is not called, the record goes to the notifier
    - ``Success``: ``processed``, backoff state cleared
    - ``Skip``: ``skipped``, available again after the skip delay
    - ``Fail``: ``failed`` with ``immediateFailure``, then notified; a record
      left in that state by an interrupted notification is notified again
    - ``Transient``: ``failed``, ``retryCount`` incremented, available after backoff

    Whether a scheduled retry halts the rest of the batch is the
    orchestrator's call, not ours.
    """

    def __init__(
        self,
        store: IRecordStore,
        config: QueueConfig,
        on_process: Callable[[QueueRecord], Any],
        notifier: TerminalNotifier,
        clock: Clock,
    ) -> None:
        self._store = store
        self._config = config
        self._on_process = on_process
        self._notifier = notifier
        self._clock = clock

    def has_exhausted_retries(self, record: QueueRecord) -> bool:
        limit = self._config.retry_limit
        return limit >= 0 and record.retry_count > 0 and record.retry_count >= limit

    def process(self, record: QueueRecord) -> RecordResult:
        if self.has_exhausted_retries(record):
            logger.info("record_retries_exhausted", record_id=record.id, retry_count=record.retry_count)
            return self._notifier.notify(record)
        # An earlier tick failed it immediately but never committed the notification.
        if record.immediate_failure and record.status == RecordStatus.FAILED:
            logger.info("record_renotified", record_id=record.id)
            return self._notifier.notify(record)

        outcome = run_handler(self._on_process, record)

        if isinstance(outcome, Success):
            return self._succeed(record, outcome)
        if isinstance(outcome, Skip):
            return self._skip(record, outcome)
        if isinstance(outcome, Fail):
            return self._fail_immediately(record, outcome)
        return self._schedule_retry(record, outcome)

    def _transition(self, record: QueueRecord, target: RecordStatus) -> None:
        if not record.status.can_transition_to(target):
            raise IllegalTransitionError(record.status, target, record.id)

    def _succeed(self, record: QueueRecord, outcome: Success) -> RecordResult:
        self._transition(record, RecordStatus.PROCESSED)
        fields: dict[str, Any] = {
            "status": RecordStatus.PROCESSED.value,
            "processedDate": self._clock(),
        }
        info = outcome.additional_info
        if info is not None:
            fields["additionalInfo"] = info
        self._store.update_one(
            record.id, fields, unset_fields=("failureReason", "retryCount", "available")
        )
        logger.info("record_processed", record_id=record.id)
        return RecordResult.PROCESSED

    def _skip(self, record: QueueRecord, outcome: Skip) -> RecordResult:
        self._transition(record, RecordStatus.SKIPPED)
        now = self._clock()
        available = now + timedelta(milliseconds=outcome.delay_ms)
        self._store.update_one(
            record.id,
            {"status": RecordStatus.SKIPPED.value, "processedDate": now, "available": available},
        )
        logger.info("record_skipped", record_id=record.id, delay_ms=outcome.delay_ms)
        return RecordResult.SKIPPED

    def _fail_immediately(self, record: QueueRecord, outcome: Fail) -> RecordResult:
        self._transition(record, RecordStatus.FAILED)
        reason = describe_error(outcome.reason)
        self._store.update_one(
            record.id,
            {"status": RecordStatus.FAILED.value, "immediateFailure": True, "failureReason": reason},
        )
        logger.warning("record_failed_immediately", record_id=record.id, reason=str(outcome.reason))

        # The notifier must see the persisted failure fields.
        doc = self._store.get(record.id)
        if doc is None:
            raise StoreError(f"Record {record.id!r} vanished after immediate failure")
        return self._notifier.notify(QueueRecord.model_validate(doc))

    def _schedule_retry(self, record: QueueRecord, outcome: Transient) -> RecordResult:
        self._transition(record, RecordStatus.FAILED)
        delay = compute_backoff_ms(
            record.retry_count,
            self._config.backoff_ms,
            self._config.backoff_coefficient,
            self._config.retry_limit,
        )
        now = self._clock()
        self._store.update_one(
            record.id,
            {
                "status": RecordStatus.FAILED.value,
                "processedDate": now,
                "failureReason": describe_error(outcome.error),
                "available": now + timedelta(milliseconds=delay),
            },
            inc_fields={"retryCount": 1},
        )
        logger.warning(
            "record_retry_scheduled",
            record_id=record.id,
            retry_count=record.retry_count + 1,
            delay_ms=delay,
            error=str(outcome.error),
        )
        return RecordResult.RETRY_SCHEDULED
