import time
from typing import Any
from pydantic import BaseModel, Field


class QueueEntry(BaseModel):
    """One pending write; immutable once stored, ordered by ``id``."""

    id: int
    payload: Any
    enqueuedAt: float = Field(default_factory=time.time)


class StoreMeta(BaseModel):
    name: str
    schemaVersion: int
    containers: list[str] = []
