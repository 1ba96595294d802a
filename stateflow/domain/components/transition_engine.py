"""TransitionEngine component executing guarded state transitions.

The engine runs every transition through a fixed sequence of stages:

    resolve current state -> graph check -> validation -> authorization
    -> transitioning notification -> before hook -> mutate + persist
    -> after hook -> history record -> success hooks + notification

Any failure before the mutation short-circuits the sequence and leaves the
entity unchanged. Failures after the mutation are logged and propagated but
never roll the committed state back.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import structlog

from stateflow.domain.components.history_recorder import HistoryRecorder
from stateflow.domain.components.metadata_validator import MetadataValidator, RuleSet
from stateflow.domain.components.permissions import PermissionChecker, actor_identifier
from stateflow.domain.components.transition_graph import TransitionGraph
from stateflow.domain.interfaces.actor_resolver import ActorResolver
from stateflow.domain.interfaces.entity_store import EntityStore
from stateflow.domain.interfaces.notification_sink import NotificationSink
from stateflow.domain.models.events import (
    TransitionedEvent,
    TransitionFailedEvent,
    TransitioningEvent,
)
from stateflow.domain.models.permission_denied import PermissionDenied
from stateflow.domain.models.state_descriptor import StateDescriptor
from stateflow.domain.models.transition_context import TransitionContext
from stateflow.domain.models.transition_error import (
    AbortedByHookError,
    AlreadyInStateError,
    CancelledByListenerError,
    NullCurrentStateError,
    StateflowError,
    TransitionError,
    TransitionNotAllowedError,
    UnauthorizedError,
    UnknownStateError,
    ValidationFailedError,
)
from stateflow.domain.models.transition_result import TransitionResult

logger = structlog.get_logger(__name__)


class TransitionHooks:
    """Lifecycle hooks run around every transition of an engine.

    Subclass and override the phases you need. ``before_transition`` may
    return False to abort the transition before any mutation.
    """

    def before_transition(self, context: TransitionContext) -> bool:
        return True

    def after_transition(self, context: TransitionContext, result: TransitionResult) -> None:
        return None

    def on_success(self, context: TransitionContext, result: TransitionResult) -> None:
        return None

    def on_failure(self, context: TransitionContext, result: TransitionResult) -> None:
        return None


class TransitionHandler(TransitionHooks):
    """Custom logic bound to a single graph edge.

    A handler contributes validation rules and an authorization check, may
    veto the transition through ``can_transition`` and owns the before,
    mutate and after phases through ``handle``. The engine still records
    history and runs the success and failure hooks.

    Example:
        ```python
        class PublishHandler(TransitionHandler):
            name = "publish"

            def rules(self, context):
                return {"approved_by": "required|string"}

            def after_transition(self, context, result):
                search_index.add(context.entity)

        graph.allow("review", "published", handler=PublishHandler())
        ```
    """

    name: str | None = None

    @property
    def identifier(self) -> str:
        """Identifier stored on the context and in history records."""
        return self.name or type(self).__name__

    def rules(self, context: TransitionContext) -> RuleSet | None:
        """Extra metadata validation rules for this edge."""
        return None

    def authorize(self, context: TransitionContext) -> bool:
        """Edge-specific authorization, checked before the permission checker."""
        return True

    def can_transition(self, context: TransitionContext) -> bool:
        """Return False to veto the transition before mutation."""
        return True

    def handle(
        self,
        context: TransitionContext,
        commit: Callable[[], TransitionResult],
    ) -> TransitionResult:
        """Run the before, mutate and after phases.

        ``commit`` mutates and persists the entity and returns the success
        result. Overrides must call it exactly once.
        """
        context.record_hook("beforeTransition")
        if not self.before_transition(context):
            raise AbortedByHookError(
                "beforeTransition",
                from_state=context.from_state,
                to_state=context.to_state,
            )
        result = commit()
        context.record_hook("afterTransition")
        self.after_transition(context, result)
        return result


class TransitionEngine:
    """Executes transitions of one state field for one kind of entity.

    The engine borrows the entity for the duration of a call, mutates the
    graph's field and persists it through the EntityStore. It keeps no
    reference to the entity afterwards.

    Example:
        ```python
        engine = TransitionEngine(graph, entity_store, history_recorder=recorder)
        result = engine.transition(post, "published", performer=user, reason="Ready")
        assert result.succeeded
        ```
    """

    def __init__(
        self,
        graph: TransitionGraph,
        entity_store: EntityStore,
        history_recorder: HistoryRecorder | None = None,
        permission_checker: PermissionChecker | None = None,
        notification_sink: NotificationSink | None = None,
        actor_resolver: ActorResolver | None = None,
        hooks: TransitionHooks | None = None,
        rules: RuleSet | None = None,
        permissions_enabled: bool = True,
        events_enabled: bool = True,
        apply_default_state: bool = True,
        validator: MetadataValidator | None = None,
    ) -> None:
        """Initialize TransitionEngine.

        Args:
            graph: Graph of legal transitions; validated here.
            entity_store: Store reading, writing and persisting the field.
            history_recorder: Recorder writing the audit trail.
            permission_checker: Checker consulted when permissions are enabled.
            notification_sink: Sink receiving lifecycle notifications.
            actor_resolver: Supplies the performer when none is passed.
            hooks: Global lifecycle hooks.
            rules: Default validation rules applied to every transition.
            permissions_enabled: Whether the authorization stage runs.
            events_enabled: Whether notifications are sent.
            apply_default_state: Whether an unset field starts in the default state.
            validator: Metadata validator (defaults to MetadataValidator()).

        Raises:
            ConfigurationError: If the graph is empty or not closed.
        """
        graph.validate()
        self.graph = graph
        self._store = entity_store
        self._recorder = history_recorder
        self._checker = permission_checker
        self._sink = notification_sink
        self._actor_resolver = actor_resolver
        self._hooks = hooks or TransitionHooks()
        self._rules = rules
        self._permissions_enabled = permissions_enabled
        self._events_enabled = events_enabled
        self._apply_default_state = apply_default_state
        self._validator = validator or MetadataValidator()

    @property
    def field(self) -> str:
        return self.graph.field

    def transition(
        self,
        entity: Any,
        to_state: str | StateDescriptor | Any,
        *,
        performer: Any = None,
        reason: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        rules: RuleSet | None = None,
        force: bool = False,
        silent: bool = False,
        allow_same_state: bool = False,
    ) -> TransitionResult:
        """Transition ``entity`` into ``to_state``.

        Args:
            entity: The entity to transition.
            to_state: Target state name, enum member or descriptor.
            performer: Actor performing the transition (None = system or
                the actor resolver's actor).
            reason: Human-readable reason, recorded in history.
            metadata: Caller metadata, validated and recorded in history.
            rules: Extra validation rules for this call.
            force: Skip the graph check. Validation, authorization and hooks
                still run.
            silent: Suppress notifications. History is still recorded.
            allow_same_state: Accept a transition into the current state as
                a no-op instead of raising AlreadyInStateError.

        Returns:
            The success result.

        Raises:
            UnknownStateError: If the target (or the current value) is not registered.
            TransitionError: If any stage rejects the transition.
            EntityStoreError: If persisting fails (the field is restored).
            HistoryStoreError: If recording fails after the mutation.
        """
        metadata = dict(metadata or {})
        requested = _requested_name(to_state)
        from_name: str | None = None
        context: TransitionContext | None = None
        handler: TransitionHandler | None = None
        committed = False

        try:
            # 0-1. Resolve target and current state
            target = self.graph.resolve(to_state)
            from_name = self._resolve_current_name(entity, force, target.name)
            source = self.graph.get(from_name)

            if from_name == target.name:
                if not allow_same_state:
                    raise AlreadyInStateError(target.name)
                logger.debug(
                    "Same-state transition accepted as no-op",
                    entity_type=self._store.entity_type(entity),
                    state=target.name,
                )
                return TransitionResult.noop_for(target.name, metadata)

            # 2. Graph check
            if not force and not self.graph.is_allowed(from_name, target.name):
                raise TransitionNotAllowedError(from_name, target.name)

            handler = self.graph.handler_for(from_name, target.name)
            context = TransitionContext(
                entity=entity,
                entity_type=self._store.entity_type(entity),
                entity_id=self._store.entity_id(entity),
                field=self.field,
                from_state=from_name,
                to_state=target.name,
                performer=performer,
                performer_id=actor_identifier(performer),
                reason=reason,
                metadata=metadata,
                forced=force,
                silent=silent,
                transition_handler=handler.identifier if handler else None,
            )

            # 3. Validation
            context.record_hook("validation")
            self._validate(context, handler, rules)

            # 4. Authorization
            if self._permissions_enabled:
                context.record_hook("authorization")
                self._authorize(context, handler, source)

            if self._should_notify(silent):
                context.record_hook("transitioning")
                event = TransitioningEvent.from_context(context)
                self._emit("transitioning", event)
                if event.is_cancelled:
                    raise CancelledByListenerError(
                        event.cancellation_reason,
                        from_state=from_name,
                        to_state=target.name,
                    )

            def commit() -> TransitionResult:
                nonlocal committed
                if committed:
                    raise AbortedByHookError(
                        "handle",
                        "The transition was already committed.",
                        from_state=context.from_state,
                        to_state=context.to_state,
                    )
                self._commit(entity, context)
                committed = True
                return self._success_result(context)

            # 5-7. Hooks around the mutation
            if handler is not None:
                context.record_hook("canTransition")
                if not handler.can_transition(context):
                    raise AbortedByHookError(
                        "canTransition", from_state=from_name, to_state=target.name
                    )
                result = handler.handle(context, commit)
                if not committed:
                    raise AbortedByHookError(
                        "handle",
                        "The handler returned without committing.",
                        from_state=from_name,
                        to_state=target.name,
                    )
            else:
                context.record_hook("beforeTransition")
                if not self._hooks.before_transition(context):
                    raise AbortedByHookError(
                        "beforeTransition", from_state=from_name, to_state=target.name
                    )
                result = commit()
                context.record_hook("afterTransition")
                self._hooks.after_transition(context, result)

            # 8. History
            if self._recorder is not None:
                record = self._recorder.record(
                    context, tracks_history=self._store.tracks_history(entity)
                )
                if record is not None:
                    context.record_hook("historyRecorded")

            # 9. Success
            context.record_hook("onSuccess")
            if handler is not None:
                handler.on_success(context, result)
            self._hooks.on_success(context, result)

            if self._should_notify(silent):
                context.record_hook("transitioned")
                self._emit("transitioned", TransitionedEvent.from_context(context))

            logger.info(
                "Transition completed",
                entity_type=context.entity_type,
                entity_id=context.entity_id,
                field=context.field,
                from_state=context.from_state,
                to_state=context.to_state,
                performer_id=context.performer_id,
                forced=force,
            )
            return result

        except Exception as e:
            if committed:
                logger.error(
                    "Transition failed after commit, state kept",
                    entity_type=context.entity_type if context else None,
                    entity_id=context.entity_id if context else None,
                    from_state=from_name,
                    to_state=requested,
                    error=str(e),
                )
                raise
            self._fail(e, entity, context, handler, from_name, requested, metadata, silent)
            raise

    def force_transition(
        self, entity: Any, to_state: str | StateDescriptor | Any, **kwargs: Any
    ) -> TransitionResult:
        """Transition without the graph check. See ``transition``."""
        return self.transition(entity, to_state, force=True, **kwargs)

    def try_transition(
        self, entity: Any, to_state: str | StateDescriptor | Any, **kwargs: Any
    ) -> TransitionResult:
        """Transition, returning a failure result instead of raising.

        Store errors are not transition failures and still propagate.
        """
        try:
            return self.transition(entity, to_state, **kwargs)
        except TransitionError as e:
            return e.result or TransitionResult.failed_with(e)
        except UnknownStateError as e:
            return TransitionResult.failed_with(
                e, to_state=_requested_name(to_state), metadata=dict(kwargs.get("metadata") or {})
            )

    def can_transition(
        self, entity: Any, to_state: str | StateDescriptor | Any, performer: Any = None
    ) -> bool:
        """Check the graph and permissions without side effects."""
        return not self._rejections(entity, to_state, performer, None, None, False)

    def validate_transition(
        self,
        entity: Any,
        to_state: str | StateDescriptor | Any,
        performer: Any = None,
        metadata: Mapping[str, Any] | None = None,
        rules: RuleSet | None = None,
    ) -> list[str]:
        """List every reason the transition would be rejected (empty = valid)."""
        return self._rejections(entity, to_state, performer, metadata, rules, True)

    def next_states(self, entity: Any, performer: Any = None) -> list[StateDescriptor]:
        """Get the states the entity may move to next.

        When a performer is given and permissions are enabled, states the
        performer may not enter are filtered out.
        """
        current = self._current_name(entity)
        if current is None:
            return []
        targets = [
            self.graph.resolve(name) for name in self.graph.allowed_transitions(current)
        ]
        if performer is None or not self._permissions_enabled or self._checker is None:
            return targets
        source = self.graph.get(current) or current
        return [
            target
            for target in targets
            if self._checker.can_transition(entity, source, target, performer)
        ]

    def current_state(self, entity: Any) -> StateDescriptor | None:
        """Get the descriptor of the current state, or None when unset.

        Raises:
            UnknownStateError: If the stored value is not registered.
        """
        value = self._store.get_field(entity, self.field)
        if value is None:
            return None
        return self.graph.resolve(value)

    def initialize(self, entity: Any) -> StateDescriptor:
        """Assign and persist the default state when the field is unset.

        Idempotent: an entity with a state keeps it.
        """
        value = self._store.get_field(entity, self.field)
        if value is not None:
            return self.graph.resolve(value)
        default = self.graph.default_state()
        previous = self._store.raw_field(entity, self.field)
        self._store.set_field(entity, self.field, default.name)
        try:
            self._store.persist(entity)
        except Exception:
            self._store.set_field(entity, self.field, previous)
            raise
        logger.debug(
            "Default state assigned",
            entity_type=self._store.entity_type(entity),
            entity_id=self._store.entity_id(entity),
            state=default.name,
        )
        return default

    # Stages

    def _resolve_current_name(self, entity: Any, force: bool, to_state: str) -> str:
        value = self._store.get_field(entity, self.field)
        if value is None:
            if not self._apply_default_state:
                raise NullCurrentStateError(self.field, to_state)
            return self.graph.default_state().name
        if value not in self.graph and not force:
            raise UnknownStateError(value)
        return value

    def _current_name(self, entity: Any) -> str | None:
        value = self._store.get_field(entity, self.field)
        if value is None and self._apply_default_state:
            return self.graph.default_state().name
        return value

    def _rule_sets(
        self,
        context: TransitionContext,
        handler: TransitionHandler | None,
        rules: RuleSet | None,
    ) -> list[RuleSet]:
        rule_sets: list[RuleSet] = []
        if self._rules:
            rule_sets.append(self._rules)
        entry_rules = self.graph.entry_rules(context.to_state)
        if entry_rules:
            rule_sets.append(entry_rules)
        if handler is not None:
            handler_rules = handler.rules(context)
            if handler_rules:
                rule_sets.append(handler_rules)
        if rules:
            rule_sets.append(rules)
        return rule_sets

    def _validate(
        self,
        context: TransitionContext,
        handler: TransitionHandler | None,
        rules: RuleSet | None,
    ) -> None:
        errors = self._validator.validate_all(
            context.metadata, self._rule_sets(context, handler, rules)
        )
        if errors:
            raise ValidationFailedError(errors, context.from_state, context.to_state)

    def _authorize(
        self,
        context: TransitionContext,
        handler: TransitionHandler | None,
        source: StateDescriptor | None,
    ) -> None:
        if context.performer is None and self._actor_resolver is not None:
            context.performer = self._actor_resolver.resolve()
            context.performer_id = actor_identifier(context.performer)

        if handler is not None and not handler.authorize(context):
            raise UnauthorizedError(
                context.performer,
                context.to_state,
                context.from_state,
                self._handler_denial(context, handler),
            )

        if self._checker is None:
            return
        denial = self._checker.explain(
            context.entity,
            source or context.from_state,
            self.graph.resolve(context.to_state),
            context.performer,
        )
        if denial is not None:
            denial = denial.model_copy(
                update={
                    "entity_type": context.entity_type,
                    "entity_id": context.entity_id,
                    "field": context.field,
                }
            )
            raise UnauthorizedError(
                context.performer, context.to_state, context.from_state, denial
            )

    def _handler_denial(
        self, context: TransitionContext, handler: TransitionHandler
    ) -> PermissionDenied:
        return PermissionDenied(
            actor_id=context.performer_id,
            entity_type=context.entity_type,
            entity_id=context.entity_id,
            field=context.field,
            from_state=context.from_state,
            to_state=context.to_state,
            reason=f"Denied by transition handler '{handler.identifier}'.",
            checker=handler.identifier,
        )

    def _commit(self, entity: Any, context: TransitionContext) -> None:
        context.record_hook("persist")
        previous = self._store.raw_field(entity, self.field)
        self._store.set_field(entity, self.field, context.to_state)
        try:
            self._store.persist(entity)
        except Exception as e:
            self._store.set_field(entity, self.field, previous)
            logger.warning(
                "Persist failed, field restored",
                entity_type=context.entity_type,
                entity_id=context.entity_id,
                field=self.field,
                restored=previous,
                error=str(e),
            )
            raise

    def _success_result(self, context: TransitionContext) -> TransitionResult:
        return TransitionResult.succeeded_with(
            context.from_state,
            context.to_state,
            {
                **context.metadata,
                "reason": context.reason,
                "entity_type": context.entity_type,
                "entity_id": context.entity_id,
                "performer_id": context.performer_id,
                "forced": context.forced,
                "transition_handler": context.transition_handler,
            },
        )

    def _fail(
        self,
        error: Exception,
        entity: Any,
        context: TransitionContext | None,
        handler: TransitionHandler | None,
        from_state: str | None,
        to_state: str,
        metadata: dict[str, Any],
        silent: bool,
    ) -> None:
        result = TransitionResult.failed_with(
            error if isinstance(error, StateflowError) else str(error),
            from_state=from_state,
            to_state=to_state,
            metadata=metadata,
        )
        if isinstance(error, TransitionError):
            error.with_context(context).with_result(result)

        if context is not None:
            context.record_hook("onFailure")
            for hooks in (handler, self._hooks):
                if hooks is None:
                    continue
                try:
                    hooks.on_failure(context, result)
                except Exception as hook_error:
                    logger.exception(
                        "on_failure hook raised",
                        to_state=to_state,
                        error=str(hook_error),
                    )

        if self._should_notify(silent):
            if context is not None:
                context.record_hook("transitionFailed")
                event = TransitionFailedEvent.from_context(
                    context, error=result.error or "", error_kind=result.error_kind
                )
            else:
                event = TransitionFailedEvent(
                    entity_type=self._store.entity_type(entity),
                    entity_id=self._store.entity_id(entity),
                    field=self.field,
                    from_state=from_state,
                    to_state=to_state,
                    metadata=metadata,
                    error=result.error or "",
                    error_kind=result.error_kind,
                )
            self._emit("transition_failed", event)

        logger.info(
            "Transition rejected",
            field=self.field,
            from_state=from_state,
            to_state=to_state,
            error_kind=result.error_kind,
            error=result.error,
        )

    def _rejections(
        self,
        entity: Any,
        to_state: str | StateDescriptor | Any,
        performer: Any,
        metadata: Mapping[str, Any] | None,
        rules: RuleSet | None,
        include_validation: bool,
    ) -> list[str]:
        try:
            target = self.graph.resolve(to_state)
            from_name = self._resolve_current_name(entity, False, target.name)
        except (UnknownStateError, NullCurrentStateError) as e:
            return [str(e)]

        if from_name == target.name:
            return [str(AlreadyInStateError(target.name))]

        reasons: list[str] = []
        if not self.graph.is_allowed(from_name, target.name):
            reasons.append(str(TransitionNotAllowedError(from_name, target.name)))

        handler = self.graph.handler_for(from_name, target.name)
        preview = TransitionContext(
            entity=entity,
            entity_type=self._store.entity_type(entity),
            entity_id=self._store.entity_id(entity),
            field=self.field,
            from_state=from_name,
            to_state=target.name,
            performer=performer,
            performer_id=actor_identifier(performer),
            metadata=dict(metadata or {}),
            transition_handler=handler.identifier if handler else None,
        )
        if include_validation:
            errors = self._validator.validate_all(
                preview.metadata, self._rule_sets(preview, handler, rules)
            )
            if errors:
                reasons.append(str(ValidationFailedError(errors)))

        if not self._permissions_enabled:
            return reasons
        if preview.performer is None and self._actor_resolver is not None:
            preview.performer = self._actor_resolver.resolve()
            preview.performer_id = actor_identifier(preview.performer)
        if handler is not None and not handler.authorize(preview):
            reasons.append(self._handler_denial(preview, handler).reason)
        if self._checker is not None:
            source = self.graph.get(from_name) or from_name
            denial = self._checker.explain(entity, source, target, preview.performer)
            if denial is not None:
                reasons.append(denial.reason)
        return reasons

    # Notifications

    def _should_notify(self, silent: bool) -> bool:
        return self._events_enabled and not silent and self._sink is not None

    def _emit(self, kind: str, event: Any) -> None:
        try:
            getattr(self._sink, kind)(event)
        except Exception as e:
            logger.warning(
                "Failed to deliver notification",
                notification=kind,
                error=str(e),
            )


def _requested_name(state: Any) -> str:
    if isinstance(state, StateDescriptor):
        return state.name
    return str(getattr(state, "value", state))
