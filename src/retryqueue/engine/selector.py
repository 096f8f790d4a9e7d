"""Batch selection and head-of-line prioritization."""

from __future__ import annotations

from datetime import datetime

from retryqueue.core.filters import And, Eq, Filter, In, Lte, Or
from retryqueue.core.logging import get_logger
from retryqueue.core.protocols import IRecordStore
from retryqueue.models.record import PROCESSABLE_STATUSES, QueueRecord, RecordStatus

logger = get_logger(__name__)


class BatchSelector:
    """Fetch the next batch of eligible records, oldest ``receivedDate`` first.

    In strict mode (``continue_processing_on_error=False``) the failed record at
    the head of the queue is fetched even while it is backing off, and nothing
    behind it may run until it becomes available again.
    """

    def __init__(
        self, store: IRecordStore, *, batch_size: int, continue_processing_on_error: bool = False
    ) -> None:
        self._store = store
        self._batch_size = batch_size
        self._continue_on_error = continue_processing_on_error

    def build_query(self, now: datetime) -> Filter:
        eligible = And((
            In("status", tuple(s.value for s in PROCESSABLE_STATUSES)),
            Lte("available", now),
        ))
        if self._continue_on_error:
            return eligible
        return Or((Eq("status", RecordStatus.FAILED.value), eligible))

    def next_batch(self, now: datetime) -> list[QueueRecord]:
        docs = self._store.find(self.build_query(now), sort_field="receivedDate", limit=self._batch_size)
        records = [QueueRecord.model_validate(d) for d in docs]
        batch = self.prioritize(records, now)
        logger.debug("batch_selected", fetched=len(records), selected=len(batch))
        return batch

    def prioritize(self, records: list[QueueRecord], now: datetime) -> list[QueueRecord]:
        if self._continue_on_error:
            return records

        # Records arrive ordered by receivedDate, so the first failed one is the
        # oldest and is the head of line when several coexist.
        head = next((r for r in records if r.status == RecordStatus.FAILED), None)
        if head is not None and head.available is not None and head.available > now:
            logger.debug("batch_blocked_by_failed_record", record_id=head.id, available=head.available)
            return []
        return [r for r in records if r.is_available(now)]
