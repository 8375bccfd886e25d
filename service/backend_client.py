import logging
from typing import Any, Dict, List, Mapping, Optional
import httpx
from config.settings import settings
from util.constants import ExternalURIs
from util.errors import BackendError, NetworkUnavailable

logger = logging.getLogger(__name__)


class BackendClient:
    """
    Thin client for the hosted database/auth/storage service.

    Rows are filtered by equality predicates only (``eq={"user_id": ...}``).
    The session token from sign_in() authorises every later call.
    """

    def __init__(
        self,
        *,
        base_url: str = settings.BACKEND_URL,
        anon_key: str = settings.BACKEND_ANON_KEY,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base = base_url.rstrip("/")
        self._anon_key = anon_key
        self._token: Optional[str] = None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(15.0, connect=5.0))

    @property
    def signed_in(self) -> bool:
        return self._token is not None

    def _headers(
        self, extra: Optional[Mapping[str, str]] = None, *, token: Optional[str] = None
    ) -> Dict[str, str]:
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {token or self._token or self._anon_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    @staticmethod
    def _filters(eq: Optional[Mapping[str, Any]]) -> Dict[str, str]:
        return {col: f"eq.{val}" for col, val in (eq or {}).items()}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base}{path}"
        try:
            res = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error("backend.request_error method=%s path=%s err=%s", method, path, type(e).__name__)
            raise NetworkUnavailable(url, type(e).__name__) from e
        if res.status_code // 100 != 2:
            logger.warning("backend.bad_status method=%s path=%s status=%d", method, path, res.status_code)
            raise BackendError(res.status_code, res.text[:200])
        return res

    # ---------------- Auth ----------------

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        res = await self._request(
            "POST",
            f"{ExternalURIs.BACKEND_AUTH}/token",
            params={"grant_type": "password"},
            headers=self._headers(),
            json={"email": email, "password": password},
        )
        session = res.json()
        self._token = session.get("access_token")
        logger.info("backend.sign_in ok=%s", self._token is not None)
        return session

    async def get_user(self, token: str) -> Dict[str, Any]:
        """Resolve someone else's access token to their user record."""
        res = await self._request("GET", f"{ExternalURIs.BACKEND_AUTH}/user", headers=self._headers(token=token))
        return res.json()

    async def sign_out(self) -> None:
        if self._token is None:
            return
        try:
            await self._request("POST", f"{ExternalURIs.BACKEND_AUTH}/logout", headers=self._headers())
        finally:
            self._token = None

    # ---------------- Rows ----------------

    async def select(
        self,
        table: str,
        *,
        eq: Optional[Mapping[str, Any]] = None,
        columns: str = "*",
        single: bool = False,
        token: Optional[str] = None,
    ) -> Any:
        params = {"select": columns, **self._filters(eq)}
        extra = {"Accept": "application/vnd.pgrst.object+json"} if single else None
        res = await self._request(
            "GET", f"{ExternalURIs.BACKEND_REST}/{table}", params=params, headers=self._headers(extra, token=token)
        )
        return res.json()

    async def insert(self, table: str, values: Mapping[str, Any] | List[Mapping[str, Any]]) -> Any:
        res = await self._request(
            "POST",
            f"{ExternalURIs.BACKEND_REST}/{table}",
            headers=self._headers({"Prefer": "return=representation"}),
            json=values,
        )
        return res.json() if res.content else None

    async def update(self, table: str, values: Mapping[str, Any], *, eq: Mapping[str, Any]) -> Any:
        res = await self._request(
            "PATCH",
            f"{ExternalURIs.BACKEND_REST}/{table}",
            params=self._filters(eq),
            headers=self._headers({"Prefer": "return=representation"}),
            json=values,
        )
        return res.json() if res.content else None

    async def delete(self, table: str, *, eq: Mapping[str, Any]) -> None:
        if not eq:
            # An unfiltered delete would empty the table
            raise ValueError("delete requires at least one equality filter")
        await self._request(
            "DELETE", f"{ExternalURIs.BACKEND_REST}/{table}", params=self._filters(eq), headers=self._headers()
        )

    # ---------------- Object storage ----------------

    async def upload(self, bucket: str, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        await self._request(
            "POST",
            f"{ExternalURIs.BACKEND_STORAGE}/object/{bucket}/{path}",
            headers=self._headers({"Content-Type": content_type, "x-upsert": "true"}),
            content=data,
        )
        return path

    async def remove(self, bucket: str, paths: List[str]) -> None:
        await self._request(
            "DELETE",
            f"{ExternalURIs.BACKEND_STORAGE}/object/{bucket}",
            headers=self._headers(),
            json={"prefixes": paths},
        )

    async def signed_url(self, bucket: str, path: str, expires_in: int = 3600) -> str:
        res = await self._request(
            "POST",
            f"{ExternalURIs.BACKEND_STORAGE}/object/sign/{bucket}/{path}",
            headers=self._headers(),
            json={"expiresIn": expires_in},
        )
        signed = res.json().get("signedURL") or res.json().get("signedUrl") or ""
        return f"{self._base}{ExternalURIs.BACKEND_STORAGE}{signed}"

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self._base}{ExternalURIs.BACKEND_STORAGE}/object/public/{bucket}/{path}"

    async def aclose(self) -> None:
        await self._client.aclose()
