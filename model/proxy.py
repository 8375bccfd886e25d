import base64
from enum import Enum
from typing import Iterable, Mapping
from urllib.parse import urlsplit
from pydantic import BaseModel, ConfigDict, Field

# Never replayed from cache: the body is stored already decoded.
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "transfer-encoding",
        "content-encoding",
        "content-length",
        "te",
        "trailer",
        "upgrade",
        "proxy-authenticate",
        "proxy-authorization",
    }
)


class WorkerState(str, Enum):
    INSTALLING = "installing"
    WAITING = "waiting"
    ACTIVATING = "activating"
    ACTIVE = "active"
    REDUNDANT = "redundant"


class ProxyAction(str, Enum):
    PASS_THROUGH = "pass-through"
    SERVE_CACHE = "serve-cache"
    FETCH_THEN_CACHE = "fetch-then-cache"
    FETCH_WITH_CACHE_FALLBACK = "fetch-with-cache-fallback"


class ProxyRequest(BaseModel):
    """What the proxy knows about an intercepted request."""

    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    url: str
    mode: str = "no-cors"
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes = b""

    @property
    def origin(self) -> str:
        parts = urlsplit(self.url)
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def cache_key(self) -> str:
        parts = urlsplit(self.url)
        key = f"{parts.scheme}://{parts.netloc}{parts.path or '/'}"
        return f"{key}?{parts.query}" if parts.query else key

    @property
    def is_navigation(self) -> bool:
        return self.mode == "navigate"

    def header(self, name: str, default: str = "") -> str:
        name = name.lower()
        for k, v in self.headers:
            if k.lower() == name:
                return v
        return default


class CachedHttpResponse(BaseModel):
    """Serialized response as held inside a cache partition."""

    url: str = ""
    status: int
    headers: list[tuple[str, str]] = Field(default_factory=list)
    body_b64: str = ""
    from_cache: bool = False

    @classmethod
    def build(
        cls,
        *,
        url: str,
        status: int,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | None,
        body: bytes,
    ) -> "CachedHttpResponse":
        pairs = headers.items() if isinstance(headers, Mapping) else headers or ()
        kept = [
            (k, v)
            for k, v in pairs
            if k.lower() not in HOP_BY_HOP_HEADERS
        ]
        return cls(
            url=url,
            status=status,
            headers=kept,
            body_b64=base64.b64encode(body).decode("ascii"),
        )

    @property
    def body(self) -> bytes:
        return base64.b64decode(self.body_b64) if self.body_b64 else b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class PartitionSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    static: str
    runtime: str

    @classmethod
    def for_version(cls, version: str) -> "PartitionSet":
        return cls(static=f"static-{version}", runtime=f"runtime-{version}")

    def names(self) -> frozenset[str]:
        return frozenset({self.static, self.runtime})


class WorkerConfig(BaseModel):
    """Resolved once at worker startup and passed in; never read from globals."""

    model_config = ConfigDict(frozen=True)

    version: str
    origin: str
    manifest: tuple[str, ...] = ("/", "/index.html", "/logo.svg")
    shell_document: str = "/index.html"
    dev_hosts: frozenset[str] = frozenset({"localhost"})

    @property
    def partitions(self) -> PartitionSet:
        return PartitionSet.for_version(self.version)

    @property
    def host(self) -> str:
        return urlsplit(self.origin).hostname or ""

    def absolute(self, path: str) -> str:
        return self.origin.rstrip("/") + "/" + path.lstrip("/")


class ProxyPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: ProxyAction
    partition: str | None = None
    # Key looked up on network failure (navigation falls back to the shell).
    fallback_key: str | None = None
    store_response: bool = False
