"""Redis-backed table store with conditional writes and secondary indexes.

Every table keeps its items as JSON strings under
``{prefix}:{table}:item:{key}``, a set of all keys for scans, and one set per
indexed ``(field, value)`` pair. Writes run inside ``WATCH``/``MULTI``
transactions so an item and its index entries always change together, and a
conditional update that loses a race is retried against the fresh item.
"""

import json
from collections.abc import Callable
from typing import Any

import redis.asyncio as redis
from redis.exceptions import WatchError

from storefront.config import Settings, TableSchema
from storefront.errors import (
    ConditionFailed,
    IndexNotFound,
    ItemNotFound,
    StoreConflict,
    StoreError,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

Item = dict[str, Any]
Condition = Callable[[Item], bool]
Mutation = Callable[[Item | None], Item | None]


class Store:
    """Table-per-entity persistence shared by all checkout services."""

    def __init__(self, settings: Settings, client: redis.Redis | None = None) -> None:
        self.redis_url = settings.redis_url
        self.prefix = settings.key_prefix
        self.max_retries = settings.store_max_retries
        self.tables: dict[str, TableSchema] = settings.tables
        self.redis_client: redis.Redis | None = client

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self.redis_client is None:
            self.redis_client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("redis_connected", url=self.redis_url)

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            logger.info("redis_disconnected")

    async def ping(self) -> bool:
        client = await self._client()
        return bool(await client.ping())

    async def get(self, table: str, key: str) -> Item | None:
        """Fetch one item, or None when it does not exist."""
        self._schema(table)
        client = await self._client()
        return self._decode(await client.get(self._item_key(table, key)))

    async def put(self, table: str, item: Item) -> None:
        """Create or replace an item."""
        schema = self._schema(table)
        key = item.get(schema.key)
        if key is None:
            raise StoreError(f"Item for {table} is missing key attribute {schema.key!r}")

        await self._transact(table, str(key), lambda current: dict(item))
        logger.debug("item_put", table=table, key=key)

    async def update(
        self,
        table: str,
        key: str,
        changes: Item | None = None,
        *,
        increments: dict[str, int] | None = None,
        condition: Condition | None = None,
    ) -> Item:
        """Apply field changes and numeric increments to an existing item.

        ``condition`` is evaluated against the current item inside the
        transaction; when it returns False nothing is written and
        ConditionFailed is raised. Returns the updated item.
        """

        def mutate(current: Item | None) -> Item:
            if current is None:
                raise ItemNotFound(table, key)
            if condition is not None and not condition(current):
                raise ConditionFailed(table, key)
            updated = {**current, **(changes or {})}
            for field, delta in (increments or {}).items():
                updated[field] = (updated.get(field) or 0) + delta
            return updated

        updated = await self._transact(table, key, mutate)
        logger.debug("item_updated", table=table, key=key)
        return updated

    async def delete(self, table: str, key: str) -> None:
        await self._transact(table, key, lambda current: None)
        logger.debug("item_deleted", table=table, key=key)

    async def scan(self, table: str) -> list[Item]:
        """Return every item of a table."""
        self._schema(table)
        client = await self._client()
        keys = await client.smembers(self._keys_key(table))
        return await self._load(table, sorted(keys))

    async def query_by_index(self, table: str, index: str, value: Any) -> list[Item]:
        """Return the items whose indexed ``index`` field equals ``value``."""
        schema = self._schema(table)
        if index not in schema.indexes:
            raise IndexNotFound(table, index)

        client = await self._client()
        keys = await client.smembers(self._index_key(table, index, value))
        items = await self._load(table, sorted(keys))

        # An item may have moved out of the index between the two reads
        return [item for item in items if str(item.get(index)) == str(value)]

    async def has_sequence(self, name: str) -> bool:
        client = await self._client()
        return bool(await client.exists(self._sequence_key(name)))

    async def next_sequence(self, name: str, floor: int = 0) -> int:
        """Atomically draw the next value of a named counter.

        A counter that does not exist yet starts from ``floor``, so the first
        value drawn is ``floor + 1``.
        """
        client = await self._client()
        key = self._sequence_key(name)
        await client.set(key, floor, nx=True)
        return int(await client.incr(key))

    async def _transact(self, table: str, key: str, mutate: Mutation) -> Item | None:
        schema = self._schema(table)
        item_key = self._item_key(table, key)
        client = await self._client()

        async with client.pipeline(transaction=True) as pipe:
            for attempt in range(1, self.max_retries + 1):
                try:
                    await pipe.watch(item_key)
                    current = self._decode(await pipe.get(item_key))
                    updated = mutate(current)
                    if current is None and updated is None:
                        return None

                    pipe.multi()
                    self._queue_write(pipe, table, schema, key, current, updated)
                    await pipe.execute()
                    return updated
                except WatchError:
                    logger.debug(
                        "store_write_conflict", table=table, key=key, attempt=attempt
                    )

        raise StoreConflict(
            f"Gave up writing {table}/{key} after {self.max_retries} conflicting attempts"
        )

    def _queue_write(
        self,
        pipe: Any,
        table: str,
        schema: TableSchema,
        key: str,
        current: Item | None,
        updated: Item | None,
    ) -> None:
        if updated is None:
            pipe.delete(self._item_key(table, key))
            pipe.srem(self._keys_key(table), key)
        else:
            pipe.set(self._item_key(table, key), json.dumps(updated))
            pipe.sadd(self._keys_key(table), key)

        for field in schema.indexes:
            old_value = current.get(field) if current else None
            new_value = updated.get(field) if updated else None
            if old_value == new_value:
                continue
            if old_value is not None:
                pipe.srem(self._index_key(table, field, old_value), key)
            if new_value is not None:
                pipe.sadd(self._index_key(table, field, new_value), key)

    async def _load(self, table: str, keys: list[str]) -> list[Item]:
        if not keys:
            return []
        client = await self._client()
        raw_items = await client.mget([self._item_key(table, key) for key in keys])
        return [item for item in map(self._decode, raw_items) if item is not None]

    async def _client(self) -> redis.Redis:
        if not self.redis_client:
            await self.connect()
        return self.redis_client

    def _schema(self, table: str) -> TableSchema:
        try:
            return self.tables[table]
        except KeyError:
            raise StoreError(f"Unknown table {table!r}") from None

    def _item_key(self, table: str, key: str) -> str:
        return f"{self.prefix}:{table}:item:{key}"

    def _keys_key(self, table: str) -> str:
        return f"{self.prefix}:{table}:keys"

    def _index_key(self, table: str, field: str, value: Any) -> str:
        return f"{self.prefix}:{table}:index:{field}:{value}"

    def _sequence_key(self, name: str) -> str:
        return f"{self.prefix}:sequence:{name}"

    @staticmethod
    def _decode(raw: str | None) -> Item | None:
        if raw is None:
            return None
        return json.loads(raw)
