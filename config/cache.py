from typing import Optional
from redis.asyncio import Redis, from_url
from config.settings import settings

_client: Optional[Redis] = None


async def get_redis() -> Redis:
    global _client
    if _client is None:
        _client = from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=False,  # repositories decode JSON themselves
            socket_keepalive=True,
            health_check_interval=30,
        )
    return _client


def use_redis(client: Optional[Redis]) -> None:
    """Swap the shared client (tests plug an in-memory Redis in here)."""
    global _client
    _client = client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
