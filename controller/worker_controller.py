from fastapi import APIRouter, Depends, status
from controller.controller_dependencies import get_gateway, get_registration, rate_limit
from core.gateway import Gateway
from core.worker import WorkerRegistration
from model.api import WorkerResponse
from util.constants import InternalURIs
from util.errors import AppError, WorkerInstallError

worker_router = APIRouter()


def _describe(registration: WorkerRegistration) -> WorkerResponse:
    worker = registration.active
    return WorkerResponse(
        state=worker.state if worker else None,
        version=worker.config.version if worker else None,
    )


@worker_router.get(InternalURIs.WORKER, response_model=WorkerResponse)
async def worker_state(
    registration: WorkerRegistration = Depends(get_registration),
) -> WorkerResponse:
    return _describe(registration)


@worker_router.post(
    InternalURIs.WORKER_UPDATE,
    response_model=WorkerResponse,
    dependencies=[Depends(rate_limit)],
)
async def worker_update(gateway: Gateway = Depends(get_gateway)) -> WorkerResponse:
    try:
        await gateway.registration.register(gateway.config)
    except WorkerInstallError as e:
        raise AppError(f"Install failed: {e}", status.HTTP_502_BAD_GATEWAY)
    return _describe(gateway.registration)
