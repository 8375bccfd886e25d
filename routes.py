from fastapi import FastAPI
from controller.connectivity_controller import connectivity_router
from controller.offline_controller import offline_router
from controller.proxy_controller import proxy_router
from controller.sms_controller import sms_router
from controller.worker_controller import worker_router


def register_routes(app: FastAPI) -> None:
    """Register & Access control controllers here. The proxy catch-all goes last."""
    app.include_router(offline_router)
    app.include_router(connectivity_router)
    app.include_router(worker_router)
    app.include_router(sms_router)
    app.include_router(proxy_router)
