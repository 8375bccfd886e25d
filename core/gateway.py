# core/gateway.py
import logging
from dataclasses import dataclass
from typing import Optional
from config.settings import settings
from core.connectivity import ConnectivityMonitor
from core.fetcher import Fetcher, HttpFetcher
from core.worker import WorkerRegistration
from model.proxy import WorkerConfig
from repository.local_store import open_local_store
from repository.partition_repository import PartitionRepository
from service.admin_auth_service import AdminAuthService
from service.backend_client import BackendClient
from service.offline_shell_service import OfflineShellService
from service.sms_service import SmsService
from service.sync_coordinator import BackendReplayer, SyncCoordinator
from util.enums import Environment
from util.errors import WorkerInstallError

logger = logging.getLogger(__name__)


def worker_config_from_settings() -> WorkerConfig:
    return WorkerConfig(
        version=settings.CACHE_VERSION,
        origin=settings.PUBLIC_ORIGIN.rstrip("/"),
        manifest=tuple(settings.INSTALL_MANIFEST),
        shell_document=settings.SHELL_DOCUMENT,
        dev_hosts=frozenset(settings.DEV_HOSTS),
    )


@dataclass
class Gateway:
    """Everything one running process shares between requests."""

    store: object
    monitor: ConnectivityMonitor
    registration: WorkerRegistration
    coordinator: SyncCoordinator
    shell: OfflineShellService
    backend: BackendClient
    sms: SmsService
    auth: AdminAuthService
    fetch: Fetcher
    config: WorkerConfig

    async def stop(self) -> None:
        await self.coordinator.stop()
        self.registration.unregister()
        await self.backend.aclose()
        if isinstance(self.fetch, HttpFetcher):
            await self.fetch.aclose()


async def start_gateway(
    *,
    fetch: Optional[Fetcher] = None,
    backend: Optional[BackendClient] = None,
    sms: Optional[SmsService] = None,
    config: Optional[WorkerConfig] = None,
    environment: str = settings.APP_ENV,
) -> Gateway:
    """
    Wire the offline layer: open the store (degrading if Redis refuses),
    register the proxy worker in prod (unregister in dev), start syncing.
    """
    config = config or worker_config_from_settings()
    store = await open_local_store()
    monitor = ConnectivityMonitor(initial=settings.START_ONLINE)
    fetch = fetch or HttpFetcher(
        public_origin=settings.PUBLIC_ORIGIN,
        upstream_origin=settings.UPSTREAM_ORIGIN,
        timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
    )
    registration = WorkerRegistration(partitions=PartitionRepository(), fetch=fetch)
    if environment == Environment.PROD:
        try:
            await registration.register(config)
        except WorkerInstallError as e:
            # Serve straight from the network until the next update attempt
            logger.error("gateway.worker.unavailable err=%s", e)
    else:
        registration.unregister()

    backend = backend or BackendClient()
    sms = sms or SmsService()
    coordinator = SyncCoordinator(store, BackendReplayer(backend, sms), monitor)
    shell = OfflineShellService(store, monitor, coordinator, registration)
    await coordinator.start()

    return Gateway(
        store=store,
        monitor=monitor,
        registration=registration,
        coordinator=coordinator,
        shell=shell,
        backend=backend,
        sms=sms,
        auth=AdminAuthService(backend),
        fetch=fetch,
        config=config,
    )
