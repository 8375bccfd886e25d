# core/fetcher.py
import logging
from typing import Optional, Protocol
from urllib.parse import urlsplit, urlunsplit
import httpx
from model.proxy import CachedHttpResponse, HOP_BY_HOP_HEADERS, ProxyRequest
from util.errors import NetworkUnavailable

logger = logging.getLogger(__name__)

# Request headers that describe the client->gateway hop, not gateway->upstream.
# accept-encoding is left to httpx so it only asks for codings it can decode.
_DROP_REQUEST_HEADERS = HOP_BY_HOP_HEADERS | {"host", "accept-encoding"}


class Fetcher(Protocol):
    async def __call__(self, request: ProxyRequest) -> CachedHttpResponse: ...


class HttpFetcher:
    """
    Network side of the proxy.

    Same-origin URLs (the gateway's public origin) are rewritten to the
    upstream origin that actually serves the app; anything else is fetched
    as-is. Any transport failure surfaces as NetworkUnavailable; HTTP error
    statuses are ordinary responses.
    """

    def __init__(
        self,
        *,
        public_origin: str,
        upstream_origin: str,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._public = public_origin.rstrip("/")
        self._upstream = urlsplit(upstream_origin.rstrip("/"))
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=5.0), follow_redirects=False
        )

    def upstream_url(self, url: str) -> str:
        if not url.startswith(self._public + "/") and url != self._public:
            return url
        parts = urlsplit(url)
        return urlunsplit(
            (self._upstream.scheme, self._upstream.netloc, parts.path, parts.query, "")
        )

    async def __call__(self, request: ProxyRequest) -> CachedHttpResponse:
        target = self.upstream_url(request.url)
        headers = [
            (k, v) for k, v in request.headers if k.lower() not in _DROP_REQUEST_HEADERS
        ]
        try:
            res = await self._client.request(
                request.method,
                target,
                headers=headers,
                content=request.body or None,
            )
        except httpx.RequestError as e:
            logger.warning("proxy.fetch.failed url=%s err=%s", target, type(e).__name__)
            raise NetworkUnavailable(request.url, type(e).__name__) from e

        return CachedHttpResponse.build(
            url=request.url,
            status=res.status_code,
            headers=res.headers.multi_items(),
            body=res.content,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
