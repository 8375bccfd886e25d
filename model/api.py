from typing import Any, Literal
from pydantic import BaseModel, Field
from model.store import QueueEntry
from model.proxy import WorkerState


class NoteRequest(BaseModel):
    note: str


class NoteResponse(BaseModel):
    note: str


class EnqueueRequest(BaseModel):
    type: str = Field(min_length=1)
    data: Any = None


class EnqueueResponse(BaseModel):
    id: int | None


class QueueResponse(BaseModel):
    entries: list[QueueEntry]


class SyncReport(BaseModel):
    ok: bool
    attempted: int = 0
    delivered: int = 0
    cleared: bool = False
    failedId: int | None = None
    error: str | None = None


class ConnectivityResponse(BaseModel):
    online: bool


class OfflineStatusResponse(BaseModel):
    online: bool
    pending: int
    worker: WorkerState | None
    version: str | None


class WorkerResponse(BaseModel):
    state: WorkerState | None
    version: str | None


class SmsResult(BaseModel):
    ok: bool
    error: str | None = None


class BroadcastRequest(BaseModel):
    phones: list[str] = Field(min_length=1)
    message: str = Field(min_length=1)


class BroadcastResponse(BaseModel):
    results: dict[str, SmsResult]


class StreamEvent(BaseModel):
    type: Literal["status", "done"]
    payload: dict
