"""Pytest configuration and shared fixtures."""
from pathlib import Path

import pytest
from dotenv import load_dotenv

from stateflow.domain.components.history_recorder import HistoryRecorder
from stateflow.domain.components.permissions import DefaultPermissionChecker
from stateflow.domain.components.transition_engine import TransitionEngine
from stateflow.domain.components.transition_graph import TransitionGraph
from stateflow.infrastructure.state_store.memory_store import (
    InMemoryEntityStore,
    InMemoryHistoryStore,
)
from stateflow.testing import RecordingNotificationSink

# Load .env file from project root before running tests
project_root = Path(__file__).parent.parent
env_path = project_root / ".env"
if env_path.exists():
    load_dotenv(env_path)


class Post:
    """Minimal entity with a ``status`` state field."""

    def __init__(self, id: int = 1, status: str | None = "draft", title: str = "Hello") -> None:
        self.id = id
        self.status = status
        self.title = title


class User:
    """Minimal actor with a role."""

    def __init__(self, id: int, role: str | list[str] | None = None) -> None:
        self.id = id
        self.role = role


@pytest.fixture
def make_post():
    """Factory building Post entities."""
    return Post


@pytest.fixture
def make_user():
    """Factory building User actors."""
    return User


@pytest.fixture
def admin() -> User:
    return User(id=100, role="admin")


@pytest.fixture
def viewer() -> User:
    return User(id=200, role="viewer")


@pytest.fixture
def blog_graph() -> TransitionGraph:
    """Blog workflow: draft -> review -> published, with cancellation."""
    graph = TransitionGraph(field="status", name="post_status")
    graph.state("draft", is_default=True)
    graph.state("review")
    graph.state("published", permitted_roles=["admin"])
    graph.state("cancelled", color="red")
    graph.allow("draft", "review")
    graph.allow("draft", "cancelled")
    graph.allow("review", "published")
    graph.allow("review", "cancelled")
    return graph


@pytest.fixture
def entity_store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def history_store() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def sink() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def engine(
    blog_graph: TransitionGraph,
    entity_store: InMemoryEntityStore,
    history_store: InMemoryHistoryStore,
    sink: RecordingNotificationSink,
) -> TransitionEngine:
    """Engine over the blog graph with in-memory stores and a recording sink."""
    return TransitionEngine(
        blog_graph,
        entity_store,
        history_recorder=HistoryRecorder(history_store),
        permission_checker=DefaultPermissionChecker(),
        notification_sink=sink,
    )
