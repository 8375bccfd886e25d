from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response
from config.settings import settings
from controller.controller_dependencies import get_registration
from core.worker import WorkerRegistration
from model.proxy import ProxyRequest
from util.enums import ErrorMessage
from util.errors import AppError, NetworkUnavailable

proxy_router = APIRouter()

PROXIED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def to_proxy_request(request: Request, body: bytes) -> ProxyRequest:
    # Keyed by the public origin so cache keys do not depend on the bind address
    url = settings.PUBLIC_ORIGIN.rstrip("/") + request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return ProxyRequest(
        method=request.method,
        url=url,
        mode=request.headers.get("sec-fetch-mode", "no-cors"),
        headers=tuple(request.headers.items()),
        body=body,
    )


@proxy_router.api_route("/{path:path}", methods=PROXIED_METHODS, include_in_schema=False)
async def proxy(
    path: str,
    request: Request,
    registration: WorkerRegistration = Depends(get_registration),
) -> Response:
    proxied = to_proxy_request(request, await request.body())
    try:
        res = await registration.handle(proxied)
    except NetworkUnavailable:
        raise AppError.of(ErrorMessage.UPSTREAM_UNAVAILABLE)

    response = Response(content=res.body, status_code=res.status)
    for key, value in res.headers:
        response.headers.append(key, value)
    response.headers["x-offline-cache"] = "hit" if res.from_cache else "miss"
    return response
