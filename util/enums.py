from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    SAVE_FAILED = ErrorInfo("Save failed", status.HTTP_500_INTERNAL_SERVER_ERROR)
    STORAGE_UNAVAILABLE = ErrorInfo(
        "Local storage unavailable", status.HTTP_503_SERVICE_UNAVAILABLE
    )
    UPSTREAM_UNAVAILABLE = ErrorInfo(
        "Network unavailable", status.HTTP_504_GATEWAY_TIMEOUT
    )
    INVALID_PAYLOAD = ErrorInfo("Invalid payload", status.HTTP_400_BAD_REQUEST)
    UNAUTHORIZED = ErrorInfo("Unauthorized", status.HTTP_401_UNAUTHORIZED)
    FORBIDDEN = ErrorInfo("Forbidden", status.HTTP_403_FORBIDDEN)
