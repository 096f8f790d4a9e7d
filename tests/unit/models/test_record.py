"""Tests for QueueRecord and the status transition table."""

from __future__ import annotations

from datetime import timedelta

import pytest

from retryqueue.models.record import BatchSummary, QueueRecord, RecordStatus
from tests.fakes import EPOCH


class TestRecordStatus:
    @pytest.mark.parametrize("status", [RecordStatus.PROCESSED, RecordStatus.NOTIFIED, RecordStatus.NOTIFY_FAILURE])
    def test_terminal_statuses_allow_nothing(self, status):
        assert status.is_terminal
        assert not status.is_processable
        assert not any(status.can_transition_to(target) for target in RecordStatus)

    def test_received_cannot_jump_to_notification(self):
        assert not RecordStatus.RECEIVED.can_transition_to(RecordStatus.NOTIFIED)
        assert RecordStatus.RECEIVED.can_transition_to(RecordStatus.FAILED)

    def test_failed_can_be_notified(self):
        assert RecordStatus.FAILED.can_transition_to(RecordStatus.NOTIFIED)
        assert RecordStatus.FAILED.can_transition_to(RecordStatus.NOTIFY_FAILURE)

    def test_stored_values(self):
        assert RecordStatus.NOTIFY_FAILURE.value == "notifyFailure"
        assert RecordStatus("skipped") is RecordStatus.SKIPPED


class TestQueueRecord:
    def test_validates_camel_case_document(self):
        record = QueueRecord.model_validate({
            "id": "abc",
            "status": "failed",
            "receivedDate": EPOCH,
            "available": EPOCH,
            "retryCount": 2,
            "failureReason": "boom",
            "data": {"n": 1},
        })
        assert record.status is RecordStatus.FAILED
        assert record.retry_count == 2
        assert record.received_date == EPOCH
        assert record.data == {"n": 1}

    def test_defaults(self):
        record = QueueRecord(id="x", received_date=EPOCH)
        assert record.status is RecordStatus.RECEIVED
        assert record.retry_count == 0
        assert record.immediate_failure is False
        assert record.additional_info is None

    def test_is_available(self):
        record = QueueRecord(id="x", received_date=EPOCH, available=EPOCH)
        assert record.is_available(EPOCH)
        assert not record.is_available(EPOCH - timedelta(seconds=1))
        assert not QueueRecord(id="y", received_date=EPOCH).is_available(EPOCH)


def test_batch_summary_attempted():
    summary = BatchSummary(selected=5, processed=2, skipped=1, retried=1)
    assert summary.attempted == 4
