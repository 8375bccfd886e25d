import logging
from typing import Optional
from fastapi import Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from redis.exceptions import RedisError
from config.settings import settings
from core.connectivity import ConnectivityMonitor
from core.gateway import Gateway
from core.worker import WorkerRegistration
from service.admin_auth_service import AdminAuthService
from service.offline_shell_service import OfflineShellService
from service.sms_service import SmsService

logger = logging.getLogger(__name__)


class FailOpenRateLimiter(RateLimiter):
    """Rate limiting that steps aside while Redis is down instead of failing requests."""

    async def __call__(self, request: Request, response: Response):
        if FastAPILimiter.redis is None:
            return None
        try:
            return await super().__call__(request, response)
        except RedisError as e:
            logger.warning("ratelimit.skipped err=%s", type(e).__name__)
            return None


# One shared instance so tests can switch it off via dependency_overrides.
rate_limit = FailOpenRateLimiter(times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS)


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


def get_shell_service(request: Request) -> OfflineShellService:
    return get_gateway(request).shell


def get_monitor(request: Request) -> ConnectivityMonitor:
    return get_gateway(request).monitor


def get_registration(request: Request) -> WorkerRegistration:
    return get_gateway(request).registration


def get_sms_service(request: Request) -> SmsService:
    return get_gateway(request).sms


# Missing credentials are reported by AdminAuthService as 401, not by HTTPBearer.
bearer = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AdminAuthService:
    return get_gateway(request).auth


def bearer_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> Optional[str]:
    return credentials.credentials if credentials else None


async def require_admin(
    token: Optional[str] = Depends(bearer_token),
    auth: AdminAuthService = Depends(get_auth_service),
) -> str:
    return await auth.require_admin(token)
