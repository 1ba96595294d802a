"""StateFlow - Main entry point wiring graphs, engines and stores together."""

from pathlib import Path
from typing import Any

from stateflow.domain.components.history_recorder import HistoryRecorder
from stateflow.domain.components.permissions import (
    DefaultPermissionChecker,
    PermissionChecker,
    PolicyCallback,
    RoleBasedChecker,
)
from stateflow.domain.components.state_history import StateHistory
from stateflow.domain.components.transition_engine import TransitionEngine, TransitionHooks
from stateflow.domain.components.transition_graph import TransitionGraph
from stateflow.domain.interfaces.actor_resolver import ActorResolver
from stateflow.domain.interfaces.entity_store import EntityStore
from stateflow.domain.interfaces.history_store import HistoryStore
from stateflow.domain.interfaces.notification_sink import NotificationSink
from stateflow.domain.models.state_descriptor import StateDescriptor
from stateflow.domain.models.transition_error import ConfigurationError
from stateflow.domain.models.transition_result import TransitionResult
from stateflow.infrastructure.config.file_loader import GraphFileLoader
from stateflow.infrastructure.config.settings import StateflowSettings
from stateflow.infrastructure.observability.logger import (
    LoggingNotificationSink,
    configure_logging,
)
from stateflow.infrastructure.state_store.memory_store import (
    InMemoryEntityStore,
    InMemoryHistoryStore,
)
from stateflow.infrastructure.state_store.redis_store import RedisHistoryStore


class StateFlow:
    """Main entry point for the library.

    StateFlow owns one TransitionEngine per registered (entity type, field)
    pair and routes every call to the right engine. All engines share the
    same stores, notification sink, permission checker and hooks.

    Example:
        ```python
        # Basic initialization
        flow = StateFlow()

        graph = TransitionGraph(field="status")
        graph.state("draft", is_default=True)
        graph.state("published", permitted_roles=["admin"])
        graph.allow("draft", "published")
        flow.register(Post, graph)

        flow.transition(post, "published", performer=admin, reason="Ready")

        # With configuration
        flow = StateFlow(config={"permissions_enabled": False})
        ```
    """

    def __init__(
        self,
        entity_store: EntityStore | None = None,
        history_store: HistoryStore | None = None,
        notification_sink: NotificationSink | None = None,
        permission_checker: PermissionChecker | None = None,
        actor_resolver: ActorResolver | None = None,
        hooks: TransitionHooks | None = None,
        config: StateflowSettings | dict[str, Any] | None = None,
    ) -> None:
        """Initialize StateFlow with dependencies.

        Args:
            entity_store: Optional EntityStore implementation. If not provided,
                        defaults to InMemoryEntityStore.
            history_store: Optional HistoryStore implementation. If not provided,
                         defaults to RedisHistoryStore when a Redis URL is
                         configured and InMemoryHistoryStore otherwise.
            notification_sink: Optional NotificationSink. If not provided,
                             logging is configured and notifications are logged.
            permission_checker: Optional PermissionChecker. If not provided,
                              defaults to DefaultPermissionChecker.
            actor_resolver: Optional resolver supplying the performer.
            hooks: Optional global lifecycle hooks.
            config: Optional configuration. Can be:
                   - StateflowSettings instance
                   - Dictionary with configuration values
                   - None (loads from environment variables)

        Raises:
            ValueError: If configuration is invalid.
        """
        # Load configuration
        if config is None:
            self._config = StateflowSettings()
        elif isinstance(config, dict):
            self._config = StateflowSettings.from_dict(config)
        elif isinstance(config, StateflowSettings):
            self._config = config
        else:
            raise ValueError(
                f"Invalid config type: {type(config)}. Expected StateflowSettings, dict, or None"
            )

        self._entity_store = entity_store or InMemoryEntityStore()

        if history_store is None:
            if self._config.redis_url:
                self._history_store: HistoryStore = RedisHistoryStore(
                    redis_url=self._config.redis_url,
                    key_prefix=self._config.history_key_prefix,
                    max_records=self._config.max_history_records,
                )
            else:
                self._history_store = InMemoryHistoryStore(
                    max_records=self._config.max_history_records
                )
        else:
            self._history_store = history_store

        if notification_sink is None:
            configure_logging(self._config.log_level, self._config.log_json)
            self._notification_sink: NotificationSink = LoggingNotificationSink()
        else:
            self._notification_sink = notification_sink

        self._permission_checker = permission_checker or DefaultPermissionChecker(
            role_checker=RoleBasedChecker(role_attribute=self._config.role_attribute)
        )
        self._actor_resolver = actor_resolver
        self._hooks = hooks

        self._history_recorder = HistoryRecorder(
            self._history_store,
            enabled=self._config.history_enabled,
            dispatch_events=self._config.history_dispatch_events,
            notification_sink=self._notification_sink,
        )

        self._engines: dict[tuple[str, str], TransitionEngine] = {}

    @property
    def config(self) -> StateflowSettings:
        return self._config

    @property
    def entity_store(self) -> EntityStore:
        return self._entity_store

    @property
    def history_store(self) -> HistoryStore:
        return self._history_store

    @property
    def permission_checker(self) -> PermissionChecker:
        return self._permission_checker

    # Registration

    def register(
        self,
        entity_type: type | str,
        graph: TransitionGraph,
        rules: dict[str, Any] | None = None,
    ) -> TransitionEngine:
        """Register the graph of one entity field.

        Args:
            entity_type: Entity class or entity type name.
            graph: Graph of the field named by ``graph.field``.
            rules: Default validation rules for every transition of this field.

        Returns:
            The engine executing transitions of this field.

        Raises:
            ConfigurationError: If the graph is invalid or the field is
                already registered for this entity type.
        """
        type_name = _type_name(entity_type)
        key = (type_name, graph.field)
        if key in self._engines:
            raise ConfigurationError(
                f"Field '{graph.field}' of '{type_name}' already has a graph",
                field=graph.field,
            )
        engine = TransitionEngine(
            graph,
            self._entity_store,
            history_recorder=self._history_recorder,
            permission_checker=self._permission_checker,
            notification_sink=self._notification_sink,
            actor_resolver=self._actor_resolver,
            hooks=self._hooks,
            rules=rules,
            permissions_enabled=self._config.permissions_enabled,
            events_enabled=self._config.events_enabled,
            apply_default_state=self._config.apply_default_state,
        )
        self._engines[key] = engine
        return engine

    def register_file(
        self, entity_type: type | str, path: str | Path | None = None
    ) -> TransitionEngine:
        """Load a graph definition file and register it.

        The path falls back to the configured ``graph_file`` and then to
        the STATEFLOW_GRAPH_FILE environment variable.
        """
        loader = GraphFileLoader(path or self._config.graph_file)
        graph = loader.load_graph(field=self._config.default_state_field)
        return self.register(entity_type, graph)

    def register_policy(self, name: str, callback: PolicyCallback) -> None:
        """Register a policy on the default permission checker.

        Raises:
            ConfigurationError: If a custom permission checker is in use.
        """
        if not isinstance(self._permission_checker, DefaultPermissionChecker):
            raise ConfigurationError(
                "Policies can only be registered on the default permission checker",
                field="permission_checker",
            )
        self._permission_checker.policy_checker.register(name, callback)

    def engine_for(self, entity: Any, field: str | None = None) -> TransitionEngine:
        """Get the engine of an entity (or entity type) field.

        When ``field`` is omitted and the type has exactly one registered
        field, that field is used; otherwise the configured default field.

        Raises:
            ConfigurationError: If no graph is registered.
        """
        type_name = (
            _type_name(entity)
            if isinstance(entity, (type, str))
            else self._entity_store.entity_type(entity)
        )
        if field is None:
            fields = [f for (t, f) in self._engines if t == type_name]
            field = fields[0] if len(fields) == 1 else self._config.default_state_field
        engine = self._engines.get((type_name, field))
        if engine is None:
            raise ConfigurationError(
                f"No graph registered for field '{field}' of '{type_name}'",
                field=field,
            )
        return engine

    def graph_for(self, entity: Any, field: str | None = None) -> TransitionGraph:
        """Get the graph of an entity (or entity type) field."""
        return self.engine_for(entity, field).graph

    # Delegation

    def transition(
        self, entity: Any, to_state: Any, *, field: str | None = None, **kwargs: Any
    ) -> TransitionResult:
        """Transition an entity. See ``TransitionEngine.transition``."""
        return self.engine_for(entity, field).transition(entity, to_state, **kwargs)

    def force_transition(
        self, entity: Any, to_state: Any, *, field: str | None = None, **kwargs: Any
    ) -> TransitionResult:
        return self.engine_for(entity, field).force_transition(entity, to_state, **kwargs)

    def try_transition(
        self, entity: Any, to_state: Any, *, field: str | None = None, **kwargs: Any
    ) -> TransitionResult:
        return self.engine_for(entity, field).try_transition(entity, to_state, **kwargs)

    def can_transition(
        self, entity: Any, to_state: Any, performer: Any = None, field: str | None = None
    ) -> bool:
        return self.engine_for(entity, field).can_transition(entity, to_state, performer)

    def next_states(
        self, entity: Any, performer: Any = None, field: str | None = None
    ) -> list[StateDescriptor]:
        return self.engine_for(entity, field).next_states(entity, performer)

    def current_state(self, entity: Any, field: str | None = None) -> StateDescriptor | None:
        return self.engine_for(entity, field).current_state(entity)

    def initialize(self, entity: Any, field: str | None = None) -> StateDescriptor:
        return self.engine_for(entity, field).initialize(entity)

    def history(self, entity: Any, field: str | None = None) -> StateHistory:
        """Get the history read model of an entity field."""
        return StateHistory(
            self._history_store,
            self._entity_store.entity_type(entity),
            self._entity_store.entity_id(entity),
            self.engine_for(entity, field).field,
        )


def _type_name(entity_type: type | str) -> str:
    return entity_type if isinstance(entity_type, str) else entity_type.__name__
