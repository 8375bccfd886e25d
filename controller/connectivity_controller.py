from typing import AsyncIterator, Literal
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from controller.controller_dependencies import get_monitor
from core.connectivity import ConnectivityMonitor
from core.streaming import ndjson_line
from model.api import ConnectivityResponse, StreamEvent
from util.constants import InternalURIs

connectivity_router = APIRouter()


@connectivity_router.get(InternalURIs.CONNECTIVITY, response_model=ConnectivityResponse)
async def connectivity(
    monitor: ConnectivityMonitor = Depends(get_monitor),
) -> ConnectivityResponse:
    return ConnectivityResponse(online=monitor.online)


@connectivity_router.get(InternalURIs.CONNECTIVITY_STREAM)
async def connectivity_stream(monitor: ConnectivityMonitor = Depends(get_monitor)):
    async def events() -> AsyncIterator[bytes]:
        async for online in monitor.changes():
            yield ndjson_line(
                StreamEvent(type="status", payload={"online": online}).model_dump()
            )

    return StreamingResponse(events(), media_type="application/x-ndjson")


@connectivity_router.post(InternalURIs.CONNECTIVITY_EVENT, response_model=ConnectivityResponse)
async def report_connectivity(
    event: Literal["online", "offline"],
    monitor: ConnectivityMonitor = Depends(get_monitor),
) -> ConnectivityResponse:
    # Host environment hook (network manager, OS script) reporting a transition
    return ConnectivityResponse(online=monitor.dispatch(event))
