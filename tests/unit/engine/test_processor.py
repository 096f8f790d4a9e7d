"""Tests for the per-record state machine."""

from __future__ import annotations

from datetime import timedelta

import pytest

from retryqueue.core.config import QueueConfig
from retryqueue.core.exceptions import FailRecord, IllegalTransitionError, SkipRecord, StoreError
from retryqueue.engine.notifier import TerminalNotifier
from retryqueue.engine.processor import RecordProcessor
from retryqueue.models.outcomes import RecordResult, Skip
from retryqueue.models.record import QueueRecord, RecordStatus
from tests.fakes import FakeClock, MemoryRecordStore


class Harness:
    """Processor wired to a memory store, a fake clock and recording hooks."""

    def __init__(self, handler, *, retry_limit=3, backoff_ms=1000, on_failure=None, store=None):
        self.store = store if store is not None else MemoryRecordStore()
        self.clock = FakeClock()
        self.handled: list[QueueRecord] = []
        self.notified: list[QueueRecord] = []
        self.config = QueueConfig(retry_limit=retry_limit, backoff_ms=backoff_ms)

        def on_process(record):
            self.handled.append(record)
            return handler(record)

        notifier = TerminalNotifier(self.store, on_failure or self.notified.append, self.clock)
        self.processor = RecordProcessor(self.store, self.config, on_process, notifier, self.clock)

    def add(self, **fields) -> QueueRecord:
        now = self.clock()
        doc = {"status": "received", "receivedDate": now, "available": now, "data": {"n": 1}, **fields}
        return QueueRecord.model_validate(self.store.insert(doc))

    def run(self, record: QueueRecord) -> RecordResult:
        return self.processor.process(record)

    def reload(self, record: QueueRecord) -> dict:
        return self.store.get(record.id)


def _raise(exc):
    def handler(record):
        raise exc
    return handler


class NotifyCommitFailsOnce(MemoryRecordStore):
    """Rejects the first write of a terminal status."""

    def __init__(self):
        super().__init__()
        self.tripped = False

    def update_one(self, record_id, set_fields, unset_fields=(), inc_fields=None):
        if not self.tripped and set_fields.get("status") == "notified":
            self.tripped = True
            raise StoreError("write timeout")
        return super().update_one(record_id, set_fields, unset_fields, inc_fields)


class TestSuccess:
    def test_marks_processed_and_clears_retry_state(self):
        h = Harness(lambda r: None)
        record = h.add(status="failed", retryCount=2, failureReason="earlier")
        assert h.run(record) is RecordResult.PROCESSED

        doc = h.reload(record)
        assert doc["status"] == "processed"
        assert doc["processedDate"] == h.clock()
        for gone in ("available", "retryCount", "failureReason", "additionalInfo"):
            assert gone not in doc

    def test_attaches_additional_info(self):
        h = Harness(lambda r: {"remoteId": "r-9"})
        record = h.add()
        h.run(record)
        assert h.reload(record)["additionalInfo"] == {"remoteId": "r-9"}

    def test_attaches_list_result(self):
        h = Harness(lambda r: ["r-1", "r-2"])
        record = h.add()
        h.run(record)
        assert h.reload(record)["additionalInfo"] == ["r-1", "r-2"]
        assert QueueRecord.model_validate(h.reload(record)).additional_info == ["r-1", "r-2"]

    def test_handler_sees_payload(self):
        h = Harness(lambda r: None)
        h.run(h.add(data={"n": 7}))
        assert h.handled[0].data == {"n": 7}


class TestSkip:
    def test_defers_without_touching_retry_count(self):
        h = Harness(_raise(SkipRecord(500)))
        record = h.add(status="failed", retryCount=1)
        assert h.run(record) is RecordResult.SKIPPED

        doc = h.reload(record)
        assert doc["status"] == "skipped"
        assert doc["available"] == h.clock() + timedelta(milliseconds=500)
        assert doc["processedDate"] == h.clock()
        assert doc["retryCount"] == 1

    def test_returned_skip_defaults_to_no_delay(self):
        h = Harness(lambda r: Skip())
        record = h.add()
        h.run(record)
        assert h.reload(record)["available"] == h.clock()


class TestImmediateFailure:
    def test_fails_and_notifies_once(self):
        h = Harness(_raise(FailRecord("bad data")))
        record = h.add()
        assert h.run(record) is RecordResult.NOTIFIED

        assert len(h.notified) == 1
        seen = h.notified[0]
        assert seen.id == record.id
        assert seen.immediate_failure is True
        assert seen.failure_reason == "bad data"
        assert seen.status is RecordStatus.FAILED

    def test_persisted_fields(self):
        h = Harness(_raise(FailRecord("bad data")))
        record = h.add()
        h.run(record)

        doc = h.reload(record)
        assert doc["status"] == "notified"
        assert doc["immediateFailure"] is True
        assert doc["failureReason"] == "bad data"
        assert "available" not in doc
        assert "retryCount" not in doc

    def test_notify_hook_failure_is_persisted(self):
        h = Harness(_raise(FailRecord("bad data")), on_failure=_raise(RuntimeError("pager down")))
        record = h.add()
        assert h.run(record) is RecordResult.NOTIFY_FAILED

        doc = h.reload(record)
        assert doc["status"] == "notifyFailure"
        assert "RuntimeError: pager down" in doc["notifyFailureReason"]

    def test_interrupted_notification_is_retried_next_tick(self):
        h = Harness(_raise(FailRecord("bad data")), store=NotifyCommitFailsOnce())
        record = h.add()
        with pytest.raises(StoreError):
            h.run(record)

        doc = h.reload(record)
        assert doc["status"] == "failed"
        assert doc["immediateFailure"] is True
        assert doc["available"] == h.clock()

        assert h.run(QueueRecord.model_validate(doc)) is RecordResult.NOTIFIED
        assert len(h.handled) == 1
        assert [r.id for r in h.notified] == [record.id, record.id]
        doc = h.reload(record)
        assert doc["status"] == "notified"
        assert "available" not in doc


class TestTransientFailure:
    def test_schedules_retry_with_backoff(self):
        h = Harness(_raise(ConnectionError("timeout")), backoff_ms=1000)
        record = h.add()
        assert h.run(record) is RecordResult.RETRY_SCHEDULED

        doc = h.reload(record)
        assert doc["status"] == "failed"
        assert doc["retryCount"] == 1
        assert doc["available"] == h.clock() + timedelta(milliseconds=1000)
        assert "ConnectionError: timeout" in doc["failureReason"]
        assert h.notified == []

    def test_backoff_grows_with_retry_count(self):
        h = Harness(_raise(ConnectionError("timeout")), backoff_ms=1000, retry_limit=10)
        record = h.add(status="failed", retryCount=3)
        h.run(record)

        doc = h.reload(record)
        assert doc["retryCount"] == 4
        assert doc["available"] == h.clock() + timedelta(milliseconds=1000 * 4 ** 1.5)


class TestRetryExhaustion:
    def test_third_attempt_skips_handler_and_notifies(self):
        h = Harness(_raise(ConnectionError("down")), retry_limit=2, backoff_ms=1000)
        record = h.add()

        h.run(record)
        h.clock.advance(seconds=1)
        h.run(QueueRecord.model_validate(h.reload(record)))
        assert h.reload(record)["retryCount"] == 2
        assert len(h.handled) == 2

        h.clock.advance(seconds=10)
        result = h.run(QueueRecord.model_validate(h.reload(record)))

        assert result is RecordResult.NOTIFIED
        assert len(h.handled) == 2
        assert [r.id for r in h.notified] == [record.id]
        doc = h.reload(record)
        assert doc["status"] == "notified"
        assert "available" not in doc

    def test_unlimited_retries_never_exhaust(self):
        h = Harness(_raise(ConnectionError("down")), retry_limit=-1)
        record = h.add(status="failed", retryCount=50)
        assert h.run(record) is RecordResult.RETRY_SCHEDULED
        assert h.reload(record)["retryCount"] == 51

    def test_zero_limit_allows_one_attempt(self):
        h = Harness(_raise(ConnectionError("down")), retry_limit=0)
        record = h.add()
        assert h.run(record) is RecordResult.RETRY_SCHEDULED
        doc = h.reload(record)
        assert doc["available"] == h.clock()

        assert h.run(QueueRecord.model_validate(doc)) is RecordResult.NOTIFIED
        assert len(h.handled) == 1


def test_terminal_record_is_rejected():
    h = Harness(lambda r: None)
    record = h.add(status="processed")
    with pytest.raises(IllegalTransitionError):
        h.run(record)
    assert h.reload(record)["status"] == "processed"
