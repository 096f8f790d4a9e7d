"""RetryQueue facade wiring selector, processor, notifier and maintenance."""

from __future__ import annotations

from typing import Any, Callable, Iterable

from retryqueue.core.config import AppSettings, QueueConfig
from retryqueue.core.logging import configure_logging, get_logger
from retryqueue.core.protocols import IRecordStore
from retryqueue.core.types import Clock, utcnow
from retryqueue.engine.maintenance import QueueMaintenance
from retryqueue.engine.notifier import TerminalNotifier
from retryqueue.engine.orchestrator import BatchOrchestrator
from retryqueue.engine.processor import RecordProcessor
from retryqueue.engine.selector import BatchSelector
from retryqueue.models.record import BatchSummary, QueueRecord, RecordStatus, StatusCount

logger = get_logger(__name__)


class RetryQueue:
    """Persistent at-least-once retry queue over a single record collection.

    ``enqueue`` is the fast path: it only writes the record. A scheduler calls
    ``process_next_batch`` periodically to drain records through
    ``on_process``; records that can no longer be retried are handed to
    ``on_failure``.

    Only one processor instance may work on a collection at a time; there is
    no cross-process locking.
    """

    def __init__(
        self,
        store: IRecordStore,
        config: QueueConfig,
        *,
        on_process: Callable[[QueueRecord], Any],
        on_failure: Callable[[QueueRecord], Any],
        on_pre_hook: Callable[[], Any] | None = None,
        on_statuses_check: Callable[[list[StatusCount]], Any] | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._clock = clock
        self._on_statuses_check = on_statuses_check

        notifier = TerminalNotifier(store, on_failure, clock)
        processor = RecordProcessor(store, config, on_process, notifier, clock)
        selector = BatchSelector(
            store,
            batch_size=config.batch_size,
            continue_processing_on_error=config.continue_processing_on_error,
        )
        self._orchestrator = BatchOrchestrator(
            selector,
            processor,
            clock,
            continue_processing_on_error=config.continue_processing_on_error,
            on_pre_hook=on_pre_hook,
        )
        self._maintenance = QueueMaintenance(
            store, max_record_age_ms=config.max_record_age_ms, clock=clock
        )

        self._ensure_indexes()

    def _ensure_indexes(self) -> None:
        try:
            self._store.ensure_index("status")
        except Exception as exc:
            logger.error("index_ensure_failed", field="status", error=str(exc))

    def enqueue(self, payload: Any) -> QueueRecord:
        """Write a payload to the queue; it is available for processing immediately."""
        now = self._clock()
        doc = self._store.insert({
            "receivedDate": now,
            "status": RecordStatus.RECEIVED.value,
            "available": now,
            "data": payload,
        })
        record = QueueRecord.model_validate(doc)
        logger.debug("record_enqueued", record_id=record.id)
        return record

    def process_next_batch(self) -> BatchSummary | None:
        """Process one batch in series. Returns None if a batch is already running."""
        return self._orchestrator.run_tick()

    def cleanup(self) -> int:
        return self._maintenance.cleanup()

    def reset_records(self, record_ids: Iterable[object]) -> int:
        return self._maintenance.reset_records(record_ids)

    def statuses_check(self) -> Any:
        """Aggregate counts per status and hand them to ``on_statuses_check``."""
        counts = self._maintenance.status_counts()
        if self._on_statuses_check is None:
            return counts
        return self._on_statuses_check(counts)


def create_queue(
    settings: AppSettings | None = None,
    *,
    on_process: Callable[[QueueRecord], Any],
    on_failure: Callable[[QueueRecord], Any],
    on_pre_hook: Callable[[], Any] | None = None,
    on_statuses_check: Callable[[list[StatusCount]], Any] | None = None,
    clock: Clock = utcnow,
) -> RetryQueue:
    """Create a RetryQueue wired to the store selected by ``settings``."""
    from retryqueue.persistence import create_store

    if settings is None:
        settings = AppSettings()
    configure_logging(json_output=settings.log_json, level=settings.log_level)

    return RetryQueue(
        create_store(settings),
        settings.queue,
        on_process=on_process,
        on_failure=on_failure,
        on_pre_hook=on_pre_hook,
        on_statuses_check=on_statuses_check,
        clock=clock,
    )
