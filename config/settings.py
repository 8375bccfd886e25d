import os
import sys
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(..., validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_TIMES: int = Field(..., validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(..., validation_alias="RATE_LIMIT_SECONDS")
    TRUST_PROXY: bool = Field(..., validation_alias="TRUST_PROXY")

    # Origins
    PUBLIC_ORIGIN: str = Field(..., validation_alias="PUBLIC_ORIGIN")
    UPSTREAM_ORIGIN: str = Field(..., validation_alias="UPSTREAM_ORIGIN")
    UPSTREAM_TIMEOUT_SECONDS: float = 15.0

    # Hosted backend (REST + auth + storage)
    BACKEND_URL: str = Field(..., validation_alias="BACKEND_URL")
    BACKEND_ANON_KEY: str = Field(..., validation_alias="BACKEND_ANON_KEY")

    # Network proxy
    CACHE_VERSION: str = "v1"
    INSTALL_MANIFEST: list[str] = ["/", "/index.html", "/logo.svg"]
    SHELL_DOCUMENT: str = "/index.html"
    DEV_HOSTS: list[str] = ["localhost", "127.0.0.1"]

    # Local store
    STORE_NAME: str = "compassion-safe"
    STORE_SCHEMA_VERSION: int = 1
    START_ONLINE: bool = True

    # SMS providers (all optional)
    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_FROM_NUMBER: str | None = None
    AT_API_KEY: str | None = None
    AT_USERNAME: str | None = None
    AT_FROM: str | None = None
    TWILIO_API_URL: str = "https://api.twilio.com/2010-04-01"
    AT_API_URL: str = "https://api.africastalking.com/version1/messaging"

    # Logging knobs
    LOGGER_NAME: str = "compassion-safe"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
