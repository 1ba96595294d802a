"""HistoryRecorder component writing the transition audit trail."""

from __future__ import annotations

import structlog

from stateflow.domain.components.permissions import actor_type
from stateflow.domain.interfaces.history_store import (
    HistoryStore,
    HistoryStoreUnavailableError,
)
from stateflow.domain.interfaces.notification_sink import NotificationSink
from stateflow.domain.models.events import HistoryRecordedEvent
from stateflow.domain.models.history_record import HistoryRecord
from stateflow.domain.models.transition_context import TransitionContext

logger = structlog.get_logger(__name__)


class HistoryRecorder:
    """Persists one HistoryRecord per successful transition.

    Recording is skipped (``record`` returns None) when the recorder is
    disabled, when no store is configured, when the entity does not track
    history, or when the store reports it is not provisioned. Any other
    store error propagates to the caller.
    """

    def __init__(
        self,
        history_store: HistoryStore | None,
        enabled: bool = True,
        dispatch_events: bool = False,
        notification_sink: NotificationSink | None = None,
    ) -> None:
        """Initialize HistoryRecorder.

        Args:
            history_store: Store receiving records. None disables recording.
            enabled: Whether recording is enabled.
            dispatch_events: Whether to send a HistoryRecordedEvent after
                each persisted record.
            notification_sink: Sink receiving HistoryRecordedEvent.
        """
        self._store = history_store
        self._enabled = enabled
        self._dispatch_events = dispatch_events
        self._sink = notification_sink

    @property
    def enabled(self) -> bool:
        return self._enabled and self._store is not None

    def build_record(self, context: TransitionContext) -> HistoryRecord:
        """Build the audit record for a completed transition."""
        return HistoryRecord(
            entity_type=context.entity_type,
            entity_id=context.entity_id,
            field=context.field,
            from_state=context.from_state,
            to_state=context.to_state,
            performer_id=context.performer_id,
            performer_type=actor_type(context.performer) if context.performer_id else None,
            reason=context.reason,
            metadata=dict(context.metadata),
            transition_handler=context.transition_handler,
            created_at=context.initiated_at,
        )

    def record(
        self, context: TransitionContext, tracks_history: bool = True
    ) -> HistoryRecord | None:
        """Persist a record for the transition described by ``context``.

        Args:
            context: Context of the completed transition.
            tracks_history: Whether the entity opts into history tracking.

        Returns:
            The persisted record, or None when recording was skipped.

        Raises:
            HistoryStoreError: If the store fails for a reason other than
                not being provisioned.
        """
        if not self.enabled or not tracks_history:
            return None

        record = self.build_record(context)
        try:
            self._store.append(record)  # type: ignore[union-attr]
        except HistoryStoreUnavailableError as e:
            logger.debug(
                "History store unavailable, skipping record",
                entity_type=record.entity_type,
                entity_id=record.entity_id,
                error=str(e),
            )
            return None

        logger.debug(
            "History recorded",
            record_id=record.id,
            entity_type=record.entity_type,
            entity_id=record.entity_id,
            from_state=record.from_state,
            to_state=record.to_state,
        )

        if self._dispatch_events and self._sink is not None:
            try:
                self._sink.history_recorded(HistoryRecordedEvent(record=record))
            except Exception as e:
                logger.warning(
                    "Failed to dispatch history recorded event",
                    record_id=record.id,
                    error=str(e),
                )
        return record

    def history_for(
        self, entity_type: str, entity_id: str | None, field: str | None = None
    ) -> list[HistoryRecord]:
        """Read back the records of one entity (empty when unavailable)."""
        if self._store is None:
            return []
        try:
            return self._store.for_entity(entity_type, entity_id, field)
        except HistoryStoreUnavailableError:
            return []
