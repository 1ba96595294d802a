"""Tests for HistoryRecorder component."""

import pytest

from stateflow.domain.components.history_recorder import HistoryRecorder
from stateflow.domain.interfaces.history_store import (
    HistoryQuery,
    HistoryStore,
    HistoryStoreError,
    HistoryStoreUnavailableError,
)
from stateflow.domain.models.history_record import HistoryRecord
from stateflow.domain.models.transition_context import TransitionContext
from stateflow.infrastructure.state_store.memory_store import InMemoryHistoryStore
from stateflow.testing import RecordingNotificationSink


class FailingHistoryStore(HistoryStore):
    """History store whose writes always fail."""

    def __init__(self, error: Exception) -> None:
        self.error = error

    def append(self, record: HistoryRecord) -> str:
        raise self.error

    def query(self, query: HistoryQuery) -> list[HistoryRecord]:
        raise self.error


class Performer:
    def __init__(self, id):
        self.id = id


def _context(**overrides) -> TransitionContext:
    values = {
        "entity": {"id": 1},
        "entity_type": "Post",
        "entity_id": "1",
        "field": "status",
        "from_state": "draft",
        "to_state": "review",
        "reason": "ready",
        "metadata": {"ticket": "T-1"},
    }
    values.update(overrides)
    return TransitionContext(**values)


class TestHistoryRecorder:
    """Tests for HistoryRecorder."""

    def setup_method(self) -> None:
        self.store = InMemoryHistoryStore()
        self.recorder = HistoryRecorder(self.store)

    def test_record_persists_context(self) -> None:
        performer = Performer(7)
        record = self.recorder.record(
            _context(performer=performer, performer_id="7", transition_handler="publish")
        )

        assert record is not None
        assert record.entity_type == "Post"
        assert record.entity_id == "1"
        assert record.from_state == "draft"
        assert record.to_state == "review"
        assert record.reason == "ready"
        assert record.metadata == {"ticket": "T-1"}
        assert record.performer_id == "7"
        assert record.performer_type == "Performer"
        assert record.transition_handler == "publish"
        assert self.store.for_entity("Post", "1") == [record]

    def test_record_uses_context_timestamp(self) -> None:
        context = _context()

        record = self.recorder.record(context)

        assert record is not None
        assert record.created_at == context.initiated_at

    def test_history_for_entity_without_id(self) -> None:
        self.recorder.record(_context(entity_id="7"))

        assert self.recorder.history_for("Post", None) == []

        anonymous = self.recorder.record(_context(entity_id=None))
        assert self.recorder.history_for("Post", None) == [anonymous]

    def test_record_without_performer_is_automated(self) -> None:
        record = self.recorder.record(_context())

        assert record is not None
        assert record.is_automated
        assert record.performer_type is None

    def test_disabled_recorder_skips(self) -> None:
        recorder = HistoryRecorder(self.store, enabled=False)

        assert recorder.record(_context()) is None
        assert len(self.store) == 0

    def test_missing_store_skips(self) -> None:
        assert HistoryRecorder(None).record(_context()) is None

    def test_untracked_entity_skips(self) -> None:
        assert self.recorder.record(_context(), tracks_history=False) is None
        assert len(self.store) == 0

    def test_unavailable_store_is_skipped(self) -> None:
        """Test that an unprovisioned store does not fail the transition."""
        recorder = HistoryRecorder(InMemoryHistoryStore(installed=False))
        assert recorder.record(_context()) is None

    def test_other_store_errors_propagate(self) -> None:
        recorder = HistoryRecorder(FailingHistoryStore(HistoryStoreError("disk full")))

        with pytest.raises(HistoryStoreError, match="disk full"):
            recorder.record(_context())

    def test_history_recorded_event_is_opt_in(self) -> None:
        sink = RecordingNotificationSink()

        HistoryRecorder(self.store, notification_sink=sink).record(_context())
        assert sink.history_events == []

        record = HistoryRecorder(
            self.store, dispatch_events=True, notification_sink=sink
        ).record(_context())
        assert [e.record for e in sink.history_events] == [record]

    def test_history_for(self) -> None:
        first = self.recorder.record(_context())
        second = self.recorder.record(_context(from_state="review", to_state="draft"))

        assert self.recorder.history_for("Post", "1") == [first, second]
        assert self.recorder.history_for("Post", "2") == []

    def test_history_for_unavailable_store_is_empty(self) -> None:
        recorder = HistoryRecorder(FailingHistoryStore(HistoryStoreUnavailableError("no table")))
        assert recorder.history_for("Post", "1") == []
