from typing import Iterable, List, Optional
from redis.asyncio import Redis
from config.cache import get_redis
from model.proxy import CachedHttpResponse
from repository.namespaces import PARTITION, PARTITIONS


class PartitionRepository:
    """
    Named cache partitions of request-key -> serialized response.

    Flow:
    - A registry set lists every partition name, one hash per partition.
    - open() registers the name (creating an empty partition if new).
    - delete() drops the name and every entry it holds.
    """

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(name: str) -> str:
        return f"{PARTITION}:{name}"

    async def keys(self) -> List[str]:
        r = await self._client()
        names = await r.smembers(PARTITIONS)
        return sorted(n.decode("utf-8") if isinstance(n, bytes) else n for n in names)

    async def has(self, name: str) -> bool:
        r = await self._client()
        return bool(await r.sismember(PARTITIONS, name))

    async def open(self, name: str) -> None:
        r = await self._client()
        await r.sadd(PARTITIONS, name)

    async def delete(self, name: str) -> bool:
        r = await self._client()
        async with r.pipeline(transaction=True) as pipe:
            pipe.srem(PARTITIONS, name)
            pipe.delete(self._key(name))
            removed, _ = await pipe.execute()
        return bool(removed)

    async def match(self, name: str, key: str) -> Optional[CachedHttpResponse]:
        r = await self._client()
        raw = await r.hget(self._key(name), key)
        if raw is None:
            return None
        cached = CachedHttpResponse.model_validate_json(raw)
        return cached.model_copy(update={"from_cache": True})

    async def put(self, name: str, key: str, response: CachedHttpResponse) -> None:
        r = await self._client()
        payload = response.model_copy(update={"from_cache": False}).model_dump_json()
        async with r.pipeline(transaction=True) as pipe:
            pipe.sadd(PARTITIONS, name)
            pipe.hset(self._key(name), key, payload)
            await pipe.execute()

    async def put_all(
        self, name: str, entries: Iterable[tuple[str, CachedHttpResponse]]
    ) -> None:
        """All-or-nothing write used when pre-caching a manifest."""
        mapping = {
            key: resp.model_copy(update={"from_cache": False}).model_dump_json()
            for key, resp in entries
        }
        r = await self._client()
        async with r.pipeline(transaction=True) as pipe:
            pipe.sadd(PARTITIONS, name)
            if mapping:
                pipe.hset(self._key(name), mapping=mapping)
            await pipe.execute()

    async def entry_keys(self, name: str) -> List[str]:
        r = await self._client()
        keys = await r.hkeys(self._key(name))
        return sorted(k.decode("utf-8") if isinstance(k, bytes) else k for k in keys)
