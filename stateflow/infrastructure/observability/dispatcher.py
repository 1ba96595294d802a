"""Fan-out notification sink delivering to several sinks."""

from collections.abc import Iterable

import structlog

from stateflow.domain.interfaces.notification_sink import NotificationSink
from stateflow.domain.models.events import (
    HistoryRecordedEvent,
    TransitionedEvent,
    TransitionFailedEvent,
    TransitioningEvent,
)

logger = structlog.get_logger(__name__)


class NotificationDispatcher(NotificationSink):
    """Delivers every notification to each subscribed sink in order.

    A failing sink is logged and skipped so the remaining sinks still
    receive the notification. The ``transitioning`` notification stops at
    the first sink that cancels the event.
    """

    def __init__(self, sinks: Iterable[NotificationSink] | None = None) -> None:
        self._sinks: list[NotificationSink] = list(sinks or [])

    def subscribe(self, sink: NotificationSink) -> None:
        """Add a sink."""
        self._sinks.append(sink)

    def unsubscribe(self, sink: NotificationSink) -> None:
        """Remove a sink (no-op when absent)."""
        if sink in self._sinks:
            self._sinks.remove(sink)

    @property
    def sinks(self) -> list[NotificationSink]:
        return list(self._sinks)

    def transitioning(self, event: TransitioningEvent) -> None:
        for sink in self._sinks:
            self._deliver(sink, "transitioning", event)
            if event.is_cancelled:
                logger.debug(
                    "Transition cancelled by listener",
                    sink=type(sink).__name__,
                    reason=event.cancellation_reason,
                )
                return

    def transitioned(self, event: TransitionedEvent) -> None:
        for sink in self._sinks:
            self._deliver(sink, "transitioned", event)

    def transition_failed(self, event: TransitionFailedEvent) -> None:
        for sink in self._sinks:
            self._deliver(sink, "transition_failed", event)

    def history_recorded(self, event: HistoryRecordedEvent) -> None:
        for sink in self._sinks:
            self._deliver(sink, "history_recorded", event)

    def _deliver(self, sink: NotificationSink, kind: str, event: object) -> None:
        try:
            getattr(sink, kind)(event)
        except Exception as e:
            logger.warning(
                "Notification sink failed",
                sink=type(sink).__name__,
                notification=kind,
                error=str(e),
            )
