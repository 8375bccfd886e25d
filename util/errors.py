from fastapi import HTTPException, status
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)

    @classmethod
    def of(cls, error: ErrorMessage) -> "AppError":
        return cls(error.value.message, error.value.http_status)


class OfflineError(Exception):
    """Base for every failure raised by the offline/caching layer."""


class StorageUnavailable(OfflineError):
    """The local store cannot be opened (unreachable, refused, newer schema)."""


class StorageWriteError(OfflineError):
    """A single cache or queue write did not commit."""


class NetworkUnavailable(OfflineError):
    """A fetch attempt failed before a response was received."""

    def __init__(self, url: str, reason: str = "network") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class SyncDeliveryFailure(OfflineError):
    """A queued entry could not be replayed against the backend."""

    def __init__(self, entry_id: int, reason: str) -> None:
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"entry {entry_id}: {reason}")


class WorkerInstallError(OfflineError):
    """Pre-caching the install manifest failed; the new worker is discarded."""


class WorkerStateError(OfflineError):
    """Illegal worker lifecycle transition."""


class BackendError(OfflineError):
    """The hosted backend answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        super().__init__(f"backend {status_code}: {message}")
