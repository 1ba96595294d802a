"""NotificationSink interface for transition lifecycle notifications."""

from abc import ABC, abstractmethod

from stateflow.domain.models.events import (
    HistoryRecordedEvent,
    TransitionedEvent,
    TransitionFailedEvent,
    TransitioningEvent,
)


class NotificationSink(ABC):
    """Receives notifications emitted by the transition engine.

    ``transitioning`` is delivered before any mutation; a sink may call
    ``event.cancel(reason)`` to veto the transition. The other notifications
    are informational.
    """

    @abstractmethod
    def transitioning(self, event: TransitioningEvent) -> None:
        """Handle the pre-mutation notification (cancellable)."""
        pass

    @abstractmethod
    def transitioned(self, event: TransitionedEvent) -> None:
        """Handle a successful transition."""
        pass

    @abstractmethod
    def transition_failed(self, event: TransitionFailedEvent) -> None:
        """Handle a failed transition."""
        pass

    def history_recorded(self, event: HistoryRecordedEvent) -> None:
        """Handle a persisted history record (opt-in)."""
        return None
