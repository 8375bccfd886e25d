from typing import Optional
from fastapi import APIRouter, Depends, status
from controller.controller_dependencies import (
    bearer_token,
    get_auth_service,
    get_shell_service,
    rate_limit,
)
from model.api import (
    EnqueueRequest,
    EnqueueResponse,
    NoteRequest,
    NoteResponse,
    OfflineStatusResponse,
    QueueResponse,
    SyncReport,
)
from service.admin_auth_service import AdminAuthService
from service.offline_shell_service import OfflineShellService
from util.constants import InternalURIs

offline_router = APIRouter(dependencies=[Depends(rate_limit)])


@offline_router.get(InternalURIs.OFFLINE_NOTE, response_model=NoteResponse)
async def get_note(
    service: OfflineShellService = Depends(get_shell_service),
) -> NoteResponse:
    return NoteResponse(note=await service.cached_note())


@offline_router.put(InternalURIs.OFFLINE_NOTE, response_model=NoteResponse)
async def put_note(
    payload: NoteRequest,
    service: OfflineShellService = Depends(get_shell_service),
) -> NoteResponse:
    return NoteResponse(note=await service.save_note(payload.note))


@offline_router.get(InternalURIs.OFFLINE_QUEUE, response_model=QueueResponse)
async def get_queue(
    service: OfflineShellService = Depends(get_shell_service),
) -> QueueResponse:
    return QueueResponse(entries=await service.pending())


@offline_router.post(
    InternalURIs.OFFLINE_QUEUE,
    response_model=EnqueueResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enqueue(
    payload: EnqueueRequest,
    token: Optional[str] = Depends(bearer_token),
    auth: AdminAuthService = Depends(get_auth_service),
    service: OfflineShellService = Depends(get_shell_service),
) -> EnqueueResponse:
    # Queued SMS are sent on the next drain, so they need the same gate as a broadcast
    if payload.type == "sms":
        await auth.require_admin(token)
    return EnqueueResponse(id=await service.enqueue(payload.type, payload.data))


@offline_router.post(InternalURIs.OFFLINE_SYNC, response_model=SyncReport)
async def sync_now(
    service: OfflineShellService = Depends(get_shell_service),
) -> SyncReport:
    return await service.sync_now()


@offline_router.get(InternalURIs.OFFLINE_STATUS, response_model=OfflineStatusResponse)
async def offline_status(
    service: OfflineShellService = Depends(get_shell_service),
) -> OfflineStatusResponse:
    return await service.status()
