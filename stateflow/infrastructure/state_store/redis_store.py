"""Redis-based history store implementation.

Each entity's records live in one Redis list, oldest first, trimmed to the
most recent ``max_records``. A set indexes every list key so queries that
span entities do not need to scan the keyspace.

Example:
    ```python
    import os
    os.environ["STATEFLOW_REDIS_URL"] = "redis://localhost:6379/0"

    from stateflow.infrastructure.state_store.redis_store import RedisHistoryStore

    store = RedisHistoryStore()
    store.append(record)
    records = store.for_entity("Post", "42")
    ```
"""

import os

import structlog
from pydantic import ValidationError
from redis import Redis
from redis.exceptions import RedisError

from stateflow.domain.interfaces.history_store import (
    HistoryQuery,
    HistoryStore,
    HistoryStoreError,
    HistoryStoreUnavailableError,
)
from stateflow.domain.models.history_record import HistoryRecord

logger = structlog.get_logger(__name__)

DEFAULT_KEY_PREFIX = "stateflow:history"
DEFAULT_MAX_RECORDS = 1000  # Maximum records per entity


class RedisHistoryStore(HistoryStore):
    """Redis-based implementation of HistoryStore.

    Without a Redis URL or client the store is treated as not provisioned
    and every operation raises HistoryStoreUnavailableError, which makes the
    history recorder skip recording. Redis errors are wrapped in
    HistoryStoreError.

    Attributes:
        _redis: Redis client instance (None when not configured)
        _key_prefix: Prefix of every key written by the store
        _max_records: Maximum number of records kept per entity
    """

    def __init__(
        self,
        redis_url: str | None = None,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        max_records: int = DEFAULT_MAX_RECORDS,
        connection_timeout: int = 5,
        client: Redis | None = None,
    ) -> None:
        """Initialize RedisHistoryStore with connection configuration.

        Args:
            redis_url: Redis connection URL. If None, reads from the
                STATEFLOW_REDIS_URL environment variable.
            key_prefix: Prefix of the list and index keys.
            max_records: Maximum number of records kept per entity.
            connection_timeout: Connection timeout in seconds (default: 5).
            client: Pre-built Redis client (takes precedence over the URL).
        """
        self._redis_url = redis_url or os.getenv("STATEFLOW_REDIS_URL")
        self._key_prefix = key_prefix.rstrip(":")
        self._max_records = max_records
        self._redis: Redis | None = client

        if self._redis is None and self._redis_url:
            try:
                self._redis = Redis.from_url(
                    self._redis_url,
                    socket_connect_timeout=connection_timeout,
                    socket_timeout=connection_timeout,
                    retry_on_timeout=True,
                )
            except (RedisError, ValueError) as e:
                logger.warning(
                    "Failed to initialize Redis connection, history unavailable",
                    error=str(e),
                    redis_url=self._redis_url,
                )
                self._redis = None
        elif self._redis is None:
            logger.warning("STATEFLOW_REDIS_URL not provided, history store unavailable")

    @property
    def index_key(self) -> str:
        return f"{self._key_prefix}:index"

    def entity_key(self, entity_type: str, entity_id: str | None) -> str:
        """Get the list key of one entity."""
        return f"{self._key_prefix}:{entity_type}:{entity_id if entity_id is not None else '_'}"

    def append(self, record: HistoryRecord) -> str:
        client = self._client()
        redis_key = self.entity_key(record.entity_type, record.entity_id)
        try:
            client.rpush(redis_key, record.model_dump_json())
            # Keep only the most recent max_records entries
            if self._max_records > 0:
                client.ltrim(redis_key, -self._max_records, -1)
            client.sadd(self.index_key, redis_key)
        except RedisError as e:
            raise HistoryStoreError(
                f"Failed to append history for {record.entity_type}:{record.entity_id}: {e}"
            ) from e
        return record.id

    def query(self, query: HistoryQuery) -> list[HistoryRecord]:
        client = self._client()
        try:
            if query.entity_type is not None and (
                query.entity_id is not None or query.exact_entity_id
            ):
                keys = [self.entity_key(query.entity_type, query.entity_id)]
            else:
                keys = sorted(_decode(k) for k in client.smembers(self.index_key))
            records: list[HistoryRecord] = []
            for redis_key in keys:
                for raw in client.lrange(redis_key, 0, -1):
                    try:
                        record = HistoryRecord.model_validate_json(raw)
                    except ValidationError as e:
                        logger.warning(
                            "Skipping malformed history entry",
                            redis_key=redis_key,
                            error=str(e),
                        )
                        continue
                    if query.matches(record):
                        records.append(record)
        except RedisError as e:
            raise HistoryStoreError(f"Failed to query history: {e}") from e

        records.sort(key=lambda r: r.created_at)
        return query.paginate(records)

    def check_connection(self) -> bool:
        """Check if the Redis connection is healthy."""
        if self._redis is None:
            return False
        try:
            return bool(self._redis.ping())
        except RedisError:
            return False

    def close(self) -> None:
        """Close the Redis connection."""
        if self._redis is not None:
            self._redis.close()

    def _client(self) -> Redis:
        if self._redis is None:
            raise HistoryStoreUnavailableError("Redis history store is not configured")
        return self._redis


def _decode(value: bytes | str) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value
