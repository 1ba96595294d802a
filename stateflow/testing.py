"""Test helpers for applications using stateflow."""

from typing import Any

from stateflow.domain.interfaces.notification_sink import NotificationSink
from stateflow.domain.models.events import (
    HistoryRecordedEvent,
    TransitionedEvent,
    TransitionFailedEvent,
    TransitioningEvent,
)


class RecordingNotificationSink(NotificationSink):
    """Notification sink that records every notification for assertions.

    It can also cancel selected transitions, standing in for a listener
    that vetoes them.

    Example:
        ```python
        sink = RecordingNotificationSink()
        flow = StateFlow(notification_sink=sink)
        flow.transition(post, "published")
        sink.assert_transitioned(post, to_state="published")
        ```
    """

    def __init__(self) -> None:
        self.transitioning_events: list[TransitioningEvent] = []
        self.transitioned_events: list[TransitionedEvent] = []
        self.failed_events: list[TransitionFailedEvent] = []
        self.history_events: list[HistoryRecordedEvent] = []
        self._prevented: dict[tuple[str | None, str], str | None] = {}
        self._prevent_all: str | None = None
        self._prevent_all_enabled = False

    # NotificationSink

    def transitioning(self, event: TransitioningEvent) -> None:
        self.transitioning_events.append(event)
        if self._prevent_all_enabled:
            event.cancel(self._prevent_all)
            return
        for key in ((event.from_state, event.to_state), (None, event.to_state)):
            if key in self._prevented:
                event.cancel(self._prevented[key])
                return

    def transitioned(self, event: TransitionedEvent) -> None:
        self.transitioned_events.append(event)

    def transition_failed(self, event: TransitionFailedEvent) -> None:
        self.failed_events.append(event)

    def history_recorded(self, event: HistoryRecordedEvent) -> None:
        self.history_events.append(event)

    # Cancellation

    def prevent_transition(
        self, to_state: str, from_state: str | None = None, reason: str | None = None
    ) -> None:
        """Cancel transitions into ``to_state`` (optionally only from ``from_state``)."""
        self._prevented[(from_state, to_state)] = reason

    def prevent_all_transitions(self, reason: str | None = None) -> None:
        """Cancel every transition."""
        self._prevent_all_enabled = True
        self._prevent_all = reason

    def allow_all_transitions(self) -> None:
        """Stop cancelling transitions."""
        self._prevented.clear()
        self._prevent_all_enabled = False
        self._prevent_all = None

    def reset(self) -> None:
        """Forget every recorded notification."""
        self.transitioning_events.clear()
        self.transitioned_events.clear()
        self.failed_events.clear()
        self.history_events.clear()

    # Assertions

    def transitions_for(self, entity: Any = None) -> list[TransitionedEvent]:
        """Recorded successful transitions, optionally of one entity."""
        if entity is None:
            return list(self.transitioned_events)
        entity_id = _entity_id(entity)
        return [e for e in self.transitioned_events if e.entity_id == entity_id]

    def assert_transitioned(
        self,
        entity: Any = None,
        to_state: str | None = None,
        from_state: str | None = None,
    ) -> None:
        """Assert that a matching successful transition was recorded."""
        matches = [
            e
            for e in self.transitions_for(entity)
            if (to_state is None or e.to_state == to_state)
            and (from_state is None or e.from_state == from_state)
        ]
        assert matches, (
            f"Expected a transition to {to_state!r} from {from_state!r}; "
            f"recorded: {[e.summary() for e in self.transitioned_events]}"
        )

    def assert_not_transitioned(self, entity: Any = None, to_state: str | None = None) -> None:
        """Assert that no matching successful transition was recorded."""
        matches = [
            e
            for e in self.transitions_for(entity)
            if to_state is None or e.to_state == to_state
        ]
        assert not matches, (
            f"Unexpected transition(s): {[e.summary() for e in matches]}"
        )

    def assert_transition_count(self, count: int, entity: Any = None) -> None:
        recorded = len(self.transitions_for(entity))
        assert recorded == count, f"Expected {count} transition(s), recorded {recorded}"

    def assert_no_transitions(self) -> None:
        self.assert_transition_count(0)

    def assert_transition_failed(
        self, to_state: str | None = None, error_kind: str | None = None
    ) -> None:
        """Assert that a matching failed transition was recorded."""
        matches = [
            e
            for e in self.failed_events
            if (to_state is None or e.to_state == to_state)
            and (error_kind is None or e.error_kind == error_kind)
        ]
        assert matches, (
            f"Expected a failed transition to {to_state!r} ({error_kind!r}); "
            f"recorded: {[(e.to_state, e.error_kind) for e in self.failed_events]}"
        )


def _entity_id(entity: Any) -> str | None:
    if isinstance(entity, dict):
        value = entity.get("id")
    else:
        value = getattr(entity, "id", None)
    return None if value is None else str(value)
