import logging
from typing import FrozenSet, Optional
from service.backend_client import BackendClient
from util.enums import ErrorMessage
from util.errors import AppError, BackendError, NetworkUnavailable

logger = logging.getLogger(__name__)

ADMIN_ROLES: FrozenSet[str] = frozenset({"admin", "super-admin"})
ROLES_TABLE = "user_roles"


class AdminAuthService:
    """
    Gate for actions that spend the operator's money (outbound SMS).

    Flow: bearer token -> backend user -> user_roles lookup.
    No token or a token the backend rejects -> 401; a user without an admin
    role -> 403.
    """

    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend

    async def require_admin(self, token: Optional[str]) -> str:
        if not token:
            raise AppError.of(ErrorMessage.UNAUTHORIZED)
        try:
            user = await self._backend.get_user(token)
        except BackendError as e:
            logger.info("auth.user.rejected status=%d", e.status_code)
            raise AppError.of(ErrorMessage.UNAUTHORIZED)
        except NetworkUnavailable:
            raise AppError.of(ErrorMessage.UPSTREAM_UNAVAILABLE)

        user_id = user.get("id") if isinstance(user, dict) else None
        if not user_id:
            raise AppError.of(ErrorMessage.UNAUTHORIZED)

        try:
            rows = await self._backend.select(
                ROLES_TABLE, eq={"user_id": user_id}, columns="role", token=token
            )
        except BackendError as e:
            logger.warning("auth.roles.error user=%s status=%d", user_id, e.status_code)
            raise AppError.of(ErrorMessage.FORBIDDEN)
        except NetworkUnavailable:
            raise AppError.of(ErrorMessage.UPSTREAM_UNAVAILABLE)

        if not any(isinstance(r, dict) and r.get("role") in ADMIN_ROLES for r in rows or []):
            logger.info("auth.forbidden user=%s", user_id)
            raise AppError.of(ErrorMessage.FORBIDDEN)
        return user_id
