"""One batch tick: pre-hook, select, process in series."""

from __future__ import annotations

import threading
from typing import Any, Callable

from retryqueue.core.logging import get_logger
from retryqueue.core.types import Clock
from retryqueue.engine.processor import RecordProcessor
from retryqueue.engine.selector import BatchSelector
from retryqueue.models.outcomes import RecordResult
from retryqueue.models.record import BatchSummary

logger = get_logger(__name__)

_SUMMARY_FIELDS: dict[RecordResult, str] = {
    RecordResult.PROCESSED: "processed",
    RecordResult.SKIPPED: "skipped",
    RecordResult.RETRY_SCHEDULED: "retried",
    RecordResult.NOTIFIED: "notified",
    RecordResult.NOTIFY_FAILED: "notify_failed",
}


class BatchOrchestrator:
    """Run batch ticks one record at a time, never two ticks at once.

    Each record's mutation is committed before the next record starts. In
    strict mode a scheduled retry ends the tick so nothing newer overtakes the
    failed record. Store errors propagate and abort the tick; mutations already
    committed stay committed.
    """

    def __init__(
        self,
        selector: BatchSelector,
        processor: RecordProcessor,
        clock: Clock,
        *,
        continue_processing_on_error: bool = False,
        on_pre_hook: Callable[[], Any] | None = None,
    ) -> None:
        self._selector = selector
        self._processor = processor
        self._clock = clock
        self._continue_on_error = continue_processing_on_error
        self._on_pre_hook = on_pre_hook
        self._running = threading.Lock()

    def run_tick(self) -> BatchSummary | None:
        """Process the next batch. Returns None if a tick is already in flight."""
        if not self._running.acquire(blocking=False):
            logger.info("batch_already_running")
            return None
        try:
            return self._run()
        finally:
            self._running.release()

    def _run(self) -> BatchSummary:
        if self._on_pre_hook is not None:
            self._on_pre_hook()

        batch = self._selector.next_batch(self._clock())
        summary = BatchSummary(selected=len(batch))

        for record in batch:
            result = self._processor.process(record)
            field = _SUMMARY_FIELDS[result]
            setattr(summary, field, getattr(summary, field) + 1)

            if result == RecordResult.RETRY_SCHEDULED and not self._continue_on_error:
                summary.stopped_early = True
                logger.info("batch_stopped_early", record_id=record.id)
                break

        if batch:
            logger.info("batch_completed", **summary.model_dump())
        return summary
