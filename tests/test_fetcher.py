"""
Unit tests for the proxy's network side
Tests for: origin rewriting, request header forwarding, content decoding, transport errors
"""
import gzip
import httpx
import pytest
from core.fetcher import HttpFetcher
from model.proxy import ProxyRequest
from util.errors import NetworkUnavailable

PUBLIC = "https://portal.test"
UPSTREAM = "https://upstream.test"


def make_fetcher(handler) -> HttpFetcher:
    return HttpFetcher(
        public_origin=PUBLIC,
        upstream_origin=UPSTREAM,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestRewrite:
    def test_same_origin_goes_upstream(self):
        fetcher = make_fetcher(lambda r: httpx.Response(200))
        assert fetcher.upstream_url(f"{PUBLIC}/assets/app.js?v=2") == f"{UPSTREAM}/assets/app.js?v=2"

    def test_foreign_origin_untouched(self):
        fetcher = make_fetcher(lambda r: httpx.Response(200))
        assert fetcher.upstream_url("https://cdn.example/x.js") == "https://cdn.example/x.js"


class TestFetch:
    async def test_browser_accept_encoding_not_forwarded(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["accept-encoding"] = request.headers.get("accept-encoding", "")
            seen["accept"] = request.headers.get("accept")
            return httpx.Response(200, text="ok")

        request = ProxyRequest(
            url=f"{PUBLIC}/assets/app.js",
            headers=(("Accept-Encoding", "br"), ("Accept", "*/*"), ("Host", "portal.test")),
        )
        await make_fetcher(handler)(request)

        # httpx advertises its own decodable codings, always starting with gzip
        assert seen["accept-encoding"].startswith("gzip")
        assert seen["accept"] == "*/*"

    async def test_compressed_body_is_stored_decoded(self):
        source = b"console.log('offline ready')"

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                headers={"content-type": "text/javascript", "content-encoding": "gzip"},
                content=gzip.compress(source),
            )

        res = await make_fetcher(handler)(
            ProxyRequest(url=f"{PUBLIC}/assets/app.js", headers=(("Accept-Encoding", "gzip, deflate, br, zstd"),))
        )
        assert res.body == source
        assert ("content-type", "text/javascript") in [(k.lower(), v) for k, v in res.headers]
        assert "content-encoding" not in {k.lower() for k, _ in res.headers}

    async def test_error_status_is_a_response(self):
        res = await make_fetcher(lambda r: httpx.Response(503, text="busy"))(ProxyRequest(url=f"{PUBLIC}/x"))
        assert res.status == 503
        assert not res.ok

    async def test_transport_error_is_network_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NetworkUnavailable) as err:
            await make_fetcher(handler)(ProxyRequest(url=f"{PUBLIC}/x"))
        assert err.value.reason == "ConnectError"
