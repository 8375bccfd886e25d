"""
Unit tests for the hosted backend client
"""
import json
import httpx
import pytest
from service.backend_client import BackendClient
from util.errors import BackendError, NetworkUnavailable


def make_client(handler) -> BackendClient:
    return BackendClient(
        base_url="https://backend.test/",
        anon_key="anon",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestSession:
    async def test_sign_in_uses_token_for_later_calls(self):
        auth_headers = []

        def handler(request: httpx.Request) -> httpx.Response:
            auth_headers.append(request.headers["authorization"])
            if request.url.path == "/auth/v1/token":
                assert request.url.params["grant_type"] == "password"
                assert json.loads(request.content) == {"email": "a@b.org", "password": "pw"}
                return httpx.Response(200, json={"access_token": "jwt-1"})
            return httpx.Response(200, json=[])

        client = make_client(handler)
        await client.sign_in("a@b.org", "pw")
        assert client.signed_in
        await client.select("profiles")
        assert auth_headers == ["Bearer anon", "Bearer jwt-1"]

    async def test_sign_out_forgets_token_even_on_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/auth/v1/token":
                return httpx.Response(200, json={"access_token": "jwt-1"})
            return httpx.Response(500)

        client = make_client(handler)
        await client.sign_in("a@b.org", "pw")
        with pytest.raises(BackendError):
            await client.sign_out()
        assert not client.signed_in


    async def test_get_user_uses_callers_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/auth/v1/user"
            assert request.headers["authorization"] == "Bearer someone-else"
            return httpx.Response(200, json={"id": "u-9"})

        client = make_client(handler)
        assert (await client.get_user("someone-else"))["id"] == "u-9"
        assert not client.signed_in


class TestRows:
    async def test_select_with_equality_filters(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            seen["accept"] = request.headers.get("accept")
            return httpx.Response(200, json={"id": 1, "child_number": "12345"})

        row = await make_client(handler).select("profiles", eq={"child_number": "12345"}, single=True)
        assert row["id"] == 1
        assert seen["params"] == {"select": "*", "child_number": "eq.12345"}
        assert seen["accept"] == "application/vnd.pgrst.object+json"

    async def test_unfiltered_delete_refused(self):
        client = make_client(lambda r: pytest.fail("no request expected"))
        with pytest.raises(ValueError):
            await client.delete("profiles", eq={})

    async def test_error_status_raises_backend_error(self):
        with pytest.raises(BackendError) as err:
            await make_client(lambda r: httpx.Response(403, text="denied")).insert("admins", {"x": 1})
        assert err.value.status_code == 403

    async def test_transport_error_is_network_unavailable(self):
        def handler(request):
            raise httpx.ConnectTimeout("slow", request=request)

        with pytest.raises(NetworkUnavailable):
            await make_client(handler).select("profiles")


class TestStorage:
    async def test_signed_and_public_urls(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/storage/v1/object/sign/files/u1/report.pdf"
            assert json.loads(request.content) == {"expiresIn": 60}
            return httpx.Response(200, json={"signedURL": "/object/sign/files/u1/report.pdf?token=t"})

        client = make_client(handler)
        assert await client.signed_url("files", "u1/report.pdf", expires_in=60) == (
            "https://backend.test/storage/v1/object/sign/files/u1/report.pdf?token=t"
        )
        assert client.public_url("logos", "a.svg") == "https://backend.test/storage/v1/object/public/logos/a.svg"

    async def test_upload_and_remove(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append((request.method, request.url.path, request.headers.get("x-upsert")))
            return httpx.Response(200, json={})

        client = make_client(handler)
        assert await client.upload("files", "u1/photo.png", b"\x89PNG", "image/png") == "u1/photo.png"
        await client.remove("files", ["u1/photo.png"])
        assert calls == [
            ("POST", "/storage/v1/object/files/u1/photo.png", "true"),
            ("DELETE", "/storage/v1/object/files", None),
        ]
