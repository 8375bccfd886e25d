from typing import Final
from config.settings import settings

ROOT: Final[str] = settings.STORE_NAME

META: Final[str] = f"{ROOT}:meta"
APP_CACHE: Final[str] = f"{ROOT}:app-cache"  # caller key -> JSON value
SYNC_QUEUE: Final[str] = f"{ROOT}:sync-queue"  # entry id -> JSON entry
SYNC_QUEUE_SEQ: Final[str] = f"{SYNC_QUEUE}:seq"  # id generator, survives clear
PARTITIONS: Final[str] = f"{ROOT}:partitions"  # set of partition names
PARTITION: Final[str] = f"{ROOT}:partition"  # <PARTITION>:<name> -> hash
