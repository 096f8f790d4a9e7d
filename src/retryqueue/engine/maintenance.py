"""Maintenance operations: cleanup, reset, status report."""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable

from retryqueue.core.filters import And, Eq, Lte
from retryqueue.core.logging import get_logger
from retryqueue.core.protocols import IRecordStore
from retryqueue.core.types import Clock
from retryqueue.models.record import RecordStatus, StatusCount

logger = get_logger(__name__)

RESET_CLEARED_FIELDS: tuple[str, ...] = (
    "processedDate",
    "failureReason",
    "retryCount",
    "immediateFailure",
    "notifyFailureReason",
)


class QueueMaintenance:
    """Housekeeping that runs outside the batch state machine.

    Every operation is keyed by status or by exact record ids, so it is safe
    to run alongside a batch tick working on other records.
    """

    def __init__(self, store: IRecordStore, *, max_record_age_ms: int, clock: Clock) -> None:
        self._store = store
        self._max_record_age_ms = max_record_age_ms
        self._clock = clock

    def cleanup(self) -> int:
        """Delete processed records older than ``max_record_age_ms``."""
        cutoff = self._clock() - timedelta(milliseconds=self._max_record_age_ms)
        deleted = self._store.delete_many(
            And((Eq("status", RecordStatus.PROCESSED.value), Lte("processedDate", cutoff)))
        )
        logger.info("records_cleaned_up", deleted=deleted, cutoff=cutoff.isoformat())
        return deleted

    def reset_records(self, record_ids: Iterable[object]) -> int:
        """Put records back to ``received`` as if freshly enqueued. Returns matched count."""
        ids = [str(record_id) for record_id in record_ids]
        if not ids:
            return 0
        now = self._clock()
        matched = self._store.update_many(
            ids,
            {
                "status": RecordStatus.RECEIVED.value,
                "receivedDate": now,
                "available": now,
                "resetDate": now,
            },
            unset_fields=RESET_CLEARED_FIELDS,
        )
        logger.info("records_reset", requested=len(ids), matched=matched)
        return matched

    def status_counts(self) -> list[StatusCount]:
        counts = []
        for value, count in self._store.aggregate_count_by_field("status"):
            if value is None:
                continue
            try:
                status = RecordStatus(value)
            except ValueError:
                logger.warning("status_count_unknown", status=value, count=count)
                continue
            counts.append(StatusCount(status=status, count=count))
        return counts
