"""Tests for in-memory entity and history stores."""

from datetime import UTC, datetime, timedelta

import pytest

from stateflow.domain.interfaces.entity_store import EntityStore
from stateflow.domain.interfaces.history_store import (
    HistoryQuery,
    HistoryStoreUnavailableError,
)
from stateflow.domain.models.history_record import HistoryRecord
from stateflow.infrastructure.state_store.memory_store import (
    InMemoryEntityStore,
    InMemoryHistoryStore,
)


class Article:
    def __init__(self, id, state=None):
        self.id = id
        self.state = state


class SlottedArticle:
    __slots__ = ("id", "state")

    def __init__(self, id, state=None):
        self.id = id
        self.state = state


def _record(entity_id="1", to_state="review", minutes=0, **extra):
    return HistoryRecord(
        entity_type="Article",
        entity_id=entity_id,
        field="state",
        from_state="draft",
        to_state=to_state,
        created_at=datetime(2024, 1, 1, tzinfo=UTC) + timedelta(minutes=minutes),
        **extra,
    )


class TestEntityStoreDefaults:
    """Tests for the attribute/mapping accessors of EntityStore."""

    def test_entity_store_is_abstract(self) -> None:
        with pytest.raises(TypeError, match="Can't instantiate abstract class"):
            EntityStore()  # type: ignore[abstract]

    def test_attribute_access(self) -> None:
        store = InMemoryEntityStore()
        article = Article(1, "draft")

        assert store.get_field(article, "state") == "draft"
        store.set_field(article, "state", "review")
        assert article.state == "review"
        assert store.entity_type(article) == "Article"
        assert store.entity_id(article) == "1"

    def test_mapping_access(self) -> None:
        store = InMemoryEntityStore()
        entity = {"id": 5, "type": "Ticket", "state": None}

        assert store.get_field(entity, "state") is None
        store.set_field(entity, "state", "open")
        assert entity["state"] == "open"
        assert store.entity_type(entity) == "Ticket"
        assert store.entity_id(entity) == "5"

    def test_enum_value_is_read(self) -> None:
        from enum import Enum

        class State(Enum):
            DRAFT = "draft"

        assert InMemoryEntityStore().get_field(Article(1, State.DRAFT), "state") == "draft"
        assert InMemoryEntityStore().raw_field(Article(1, State.DRAFT), "state") is State.DRAFT
        assert InMemoryEntityStore().raw_field({"state": State.DRAFT}, "state") is State.DRAFT


class TestInMemoryEntityStore:
    """Tests for InMemoryEntityStore."""

    def test_persist_snapshots_entity(self) -> None:
        store = InMemoryEntityStore()
        article = Article(1, "draft")

        store.persist(article)
        article.state = "review"

        assert store.saved_field(article, "state") == "draft"
        assert store.persist_count == 1

    def test_unsaved_entity(self) -> None:
        store = InMemoryEntityStore()
        assert store.saved(Article(1)) is None
        assert store.saved_field(Article(1), "state") is None

    def test_untracked_types(self) -> None:
        store = InMemoryEntityStore(untracked_types=["Article"])

        assert store.tracks_history(Article(1)) is False
        assert store.tracks_history({"id": 1}) is True

    def test_entity_without_dict_cannot_be_persisted(self) -> None:
        from stateflow.domain.interfaces.entity_store import EntityStoreError

        with pytest.raises(EntityStoreError):
            InMemoryEntityStore().persist(SlottedArticle(1))


class TestInMemoryHistoryStore:
    """Tests for InMemoryHistoryStore."""

    def setup_method(self) -> None:
        self.store = InMemoryHistoryStore()

    def test_append_returns_record_id(self) -> None:
        record = _record()
        assert self.store.append(record) == record.id
        assert len(self.store) == 1

    def test_for_entity(self) -> None:
        first = _record("1", minutes=1)
        other = _record("2")
        second = _record("1", to_state="published", minutes=2)
        for record in (second, other, first):
            self.store.append(record)

        assert self.store.for_entity("Article", "1") == [first, second]
        assert self.store.for_entity("Article", "1", field="other") == []

    def test_for_entity_without_id_matches_only_id_less_records(self) -> None:
        identified = _record("7")
        anonymous = _record(None, minutes=1)
        self.store.append(identified)
        self.store.append(anonymous)

        assert self.store.for_entity("Article", None) == [anonymous]
        assert self.store.query(HistoryQuery(entity_type="Article")) == [
            identified,
            anonymous,
        ]

    def test_for_entity_without_id_and_no_records(self) -> None:
        self.store.append(_record("7"))

        assert self.store.for_entity("Article", None) == []

    def test_query_filters(self) -> None:
        self.store.append(_record("1", to_state="review", performer_id="7"))
        self.store.append(_record("2", to_state="published"))
        self.store.append(_record("3", to_state="published", transition_handler="publish"))

        assert len(self.store.query(HistoryQuery(to_state="published"))) == 2
        assert len(self.store.query(HistoryQuery(performer_id="7"))) == 1
        assert len(self.store.query(HistoryQuery(transition_handler="publish"))) == 1
        assert len(self.store.query(HistoryQuery(entity_type="Other"))) == 0

    def test_query_time_range_and_pagination(self) -> None:
        for minutes in range(5):
            self.store.append(_record(minutes=minutes))

        start = datetime(2024, 1, 1, tzinfo=UTC)
        in_range = self.store.query(
            HistoryQuery(
                created_from=start + timedelta(minutes=1),
                created_to=start + timedelta(minutes=3),
            )
        )
        assert len(in_range) == 3

        page = self.store.query(HistoryQuery(offset=1, limit=2))
        assert [r.created_at.minute for r in page] == [1, 2]

    def test_max_records_per_entity_fifo(self) -> None:
        store = InMemoryHistoryStore(max_records=2)
        records = [_record(minutes=m) for m in range(3)]
        for record in records:
            store.append(record)
        store.append(_record("2"))

        assert store.for_entity("Article", "1") == records[1:]
        assert len(store) == 3

    def test_uninstalled_store_is_unavailable(self) -> None:
        store = InMemoryHistoryStore(installed=False)

        with pytest.raises(HistoryStoreUnavailableError):
            store.append(_record())
        with pytest.raises(HistoryStoreUnavailableError):
            store.for_entity("Article", "1")

        store.install()
        store.append(_record())
        assert len(store) == 1

    def test_clear(self) -> None:
        self.store.append(_record())
        self.store.clear()
        assert len(self.store) == 0
