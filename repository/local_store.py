import json
import logging
import time
from typing import Any, Awaitable, Callable, Final, List, Optional
from redis.asyncio import Redis
from redis.exceptions import RedisError
from config.cache import get_redis
from config.settings import settings
from model.store import QueueEntry, StoreMeta
from repository.namespaces import APP_CACHE, META, SYNC_QUEUE, SYNC_QUEUE_SEQ
from util.errors import StorageUnavailable, StorageWriteError

logger = logging.getLogger(__name__)

CACHE_CONTAINER: Final[str] = "app-cache"
QUEUE_CONTAINER: Final[str] = "sync-queue"

# Upgrade steps keyed by the version they migrate TO. Each runs once, in order,
# when open() sees an older stored schema.
_Upgrade = Callable[[Redis], Awaitable[None]]


async def _create_containers(r: Redis) -> None:
    await r.hset(META, "containers", json.dumps([CACHE_CONTAINER, QUEUE_CONTAINER]))


UPGRADES: dict[int, _Upgrade] = {1: _create_containers}


class LocalStore:
    """
    Redis-backed durable store with two containers:
    - app-cache: caller-chosen string key -> JSON value (upsert, no TTL)
    - sync-queue: auto-numbered, append-only entries drained by full clear

    Every call is its own short transaction. "Read queue, then clear" is two
    calls; anything enqueued in between is dropped by the clear.
    """

    def __init__(
        self,
        *,
        name: str = settings.STORE_NAME,
        schema_version: int = settings.STORE_SCHEMA_VERSION,
    ) -> None:
        self._name = name
        self._version = int(schema_version)
        self._opened = False

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @property
    def is_open(self) -> bool:
        return self._opened

    # ---------------- Lifecycle ----------------

    async def open(self) -> StoreMeta:
        """
        Idempotent: creates the containers on first open and upgrades in place
        when the schema version grows. Never touches existing data.
        """
        try:
            r = await self._client()
            await r.ping()
            raw = await r.hget(META, "schema_version")
            stored = int(raw) if raw is not None else 0
            if stored > self._version:
                raise StorageUnavailable(
                    f"stored schema v{stored} is newer than v{self._version}"
                )
            for target in range(stored + 1, self._version + 1):
                step = UPGRADES.get(target)
                if step is not None:
                    await step(r)
                await r.hset(META, mapping={"name": self._name, "schema_version": target})
                logger.info("store.upgrade name=%s to=%d", self._name, target)
            containers = await r.hget(META, "containers")
        except RedisError as e:
            logger.warning("store.open.unavailable err=%s", type(e).__name__)
            raise StorageUnavailable(str(e)) from e

        self._opened = True
        return StoreMeta(
            name=self._name,
            schemaVersion=self._version,
            containers=json.loads(containers) if containers else [],
        )

    async def _ready(self) -> Redis:
        if not self._opened:
            await self.open()
        return await self._client()

    # ---------------- Cache container ----------------

    async def cache_set(self, key: str, value: Any) -> None:
        """Upsert a JSON-serialisable value. Anything else is a failed write."""
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error("store.cache.set.unserialisable key=%s type=%s", key, type(value).__name__)
            raise StorageWriteError(f"value for {key!r} is not JSON-serialisable") from e
        r = await self._ready()
        try:
            await r.hset(APP_CACHE, key, raw)
        except RedisError as e:
            logger.error("store.cache.set.error key=%s err=%s", key, type(e).__name__)
            raise StorageWriteError(str(e)) from e

    async def cache_get(self, key: str) -> Optional[Any]:
        r = await self._ready()
        try:
            raw = await r.hget(APP_CACHE, key)
        except RedisError as e:
            raise StorageUnavailable(str(e)) from e
        if raw is None:
            return None
        return json.loads(raw)

    # ---------------- Queue container ----------------

    async def queue_push(self, payload: Any) -> int:
        r = await self._ready()
        try:
            entry_id = int(await r.incr(SYNC_QUEUE_SEQ))
            entry = QueueEntry(id=entry_id, payload=payload, enqueuedAt=time.time())
            await r.hset(SYNC_QUEUE, str(entry_id), entry.model_dump_json())
        except RedisError as e:
            logger.error("store.queue.push.error err=%s", type(e).__name__)
            raise StorageWriteError(str(e)) from e
        logger.info("store.queue.push id=%d", entry_id)
        return entry_id

    async def queue_all(self) -> List[QueueEntry]:
        r = await self._ready()
        try:
            raw = await r.hgetall(SYNC_QUEUE)
        except RedisError as e:
            raise StorageUnavailable(str(e)) from e
        out: List[QueueEntry] = []
        for key, val in sorted((raw or {}).items(), key=lambda kv: int(kv[0])):
            try:
                out.append(QueueEntry.model_validate_json(val))
            except ValueError:
                # Kept with an empty payload so the drain fails on it instead of clearing it
                logger.error("store.queue.malformed id=%s", int(key))
                out.append(QueueEntry(id=int(key), payload=None, enqueuedAt=0.0))
        return out

    async def queue_count(self) -> int:
        r = await self._ready()
        try:
            return int(await r.hlen(SYNC_QUEUE))
        except RedisError as e:
            raise StorageUnavailable(str(e)) from e

    async def queue_clear(self) -> None:
        r = await self._ready()
        try:
            await r.delete(SYNC_QUEUE)
        except RedisError as e:
            logger.error("store.queue.clear.error err=%s", type(e).__name__)
            raise StorageWriteError(str(e)) from e
        logger.info("store.queue.cleared")


class DegradedLocalStore:
    """Stand-in when storage cannot be opened: reads absent, writes dropped."""

    is_open = False

    async def open(self) -> StoreMeta:
        return StoreMeta(name=settings.STORE_NAME, schemaVersion=0)

    async def cache_set(self, key: str, value: Any) -> None:
        return None

    async def cache_get(self, key: str) -> Optional[Any]:
        return None

    async def queue_push(self, payload: Any) -> None:
        return None

    async def queue_all(self) -> List[QueueEntry]:
        return []

    async def queue_count(self) -> int:
        return 0

    async def queue_clear(self) -> None:
        return None


async def open_local_store(store: Optional[LocalStore] = None):
    store = store or LocalStore()
    try:
        await store.open()
    except StorageUnavailable as e:
        logger.warning("store.degraded reason=%s", e)
        return DegradedLocalStore()
    return store
