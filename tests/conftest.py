"""
Offline gateway - test configuration and fixtures
"""
import os

# Settings are read at import time; set them before any application import.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("ALLOWED_ORIGIN", "https://portal.test")
os.environ.setdefault("RATE_LIMIT_TIMES", "100")
os.environ.setdefault("RATE_LIMIT_SECONDS", "60")
os.environ.setdefault("TRUST_PROXY", "false")
os.environ.setdefault("PUBLIC_ORIGIN", "https://portal.test")
os.environ.setdefault("UPSTREAM_ORIGIN", "https://upstream.test")
os.environ.setdefault("BACKEND_URL", "https://backend.test")
os.environ.setdefault("BACKEND_ANON_KEY", "anon-test-key")

from typing import Dict, List, Optional, Tuple
import pytest
from fakeredis import FakeServer
from fakeredis.aioredis import FakeRedis
from config.cache import use_redis
from model.proxy import CachedHttpResponse, ProxyRequest, WorkerConfig
from util.errors import NetworkUnavailable

ORIGIN = "https://portal.test"


class FakeNetwork:
    """Upstream stand-in: canned responses by URL, switchable offline."""

    def __init__(self, routes: Optional[Dict[str, Tuple[int, bytes]]] = None) -> None:
        self.routes: Dict[str, Tuple[int, bytes]] = dict(routes or {})
        self.offline = False
        self.failing: set[str] = set()
        self.calls: List[str] = []

    async def __call__(self, request: ProxyRequest) -> CachedHttpResponse:
        self.calls.append(request.url)
        if self.offline or request.cache_key in self.failing:
            raise NetworkUnavailable(request.url, "ConnectError")
        status, body = self.routes.get(request.cache_key, (404, b"not found"))
        return CachedHttpResponse.build(
            url=request.url,
            status=status,
            headers={"content-type": "text/plain", "content-length": str(len(body))},
            body=body,
        )


@pytest.fixture
async def redis():
    client = FakeRedis(server=FakeServer())
    use_redis(client)
    yield client
    use_redis(None)
    await client.aclose()


@pytest.fixture
def shell_routes() -> Dict[str, Tuple[int, bytes]]:
    return {
        f"{ORIGIN}/": (200, b"<html>root</html>"),
        f"{ORIGIN}/index.html": (200, b"<html>shell</html>"),
        f"{ORIGIN}/logo.svg": (200, b"<svg/>"),
    }


@pytest.fixture
def network(shell_routes) -> FakeNetwork:
    return FakeNetwork(shell_routes)


@pytest.fixture
def worker_config() -> WorkerConfig:
    return WorkerConfig(version="v1", origin=ORIGIN)
