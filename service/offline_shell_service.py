import logging
from typing import Any, List, Optional
from core.connectivity import ConnectivityMonitor
from core.worker import WorkerRegistration
from model.api import OfflineStatusResponse, SyncReport
from model.store import QueueEntry
from service.sync_coordinator import SyncCoordinator
from util.constants import OFFLINE_NOTE_KEY
from util.enums import ErrorMessage
from util.errors import AppError, StorageUnavailable, StorageWriteError

logger = logging.getLogger(__name__)


class OfflineShellService:
    """
    What the offline app shell screen does: keep a draft note in the local
    cache, queue writes for later, show connectivity and pending work.
    Storage failures become user-facing "save failed" / "unavailable" errors.
    """

    def __init__(
        self,
        store,
        monitor: ConnectivityMonitor,
        coordinator: SyncCoordinator,
        registration: Optional[WorkerRegistration] = None,
    ) -> None:
        self._store = store
        self._monitor = monitor
        self._coordinator = coordinator
        self._registration = registration

    async def cached_note(self) -> str:
        try:
            note = await self._store.cache_get(OFFLINE_NOTE_KEY)
        except StorageUnavailable:
            logger.warning("shell.note.read.unavailable")
            return ""
        return note if isinstance(note, str) else ""

    async def save_note(self, note: str) -> str:
        try:
            await self._store.cache_set(OFFLINE_NOTE_KEY, note)
        except (StorageWriteError, StorageUnavailable):
            raise AppError.of(ErrorMessage.SAVE_FAILED)
        logger.info("shell.note.saved chars=%d", len(note))
        return note

    async def enqueue(self, kind: str, data: Any) -> Optional[int]:
        try:
            entry_id = await self._store.queue_push({"type": kind, "data": data})
        except (TypeError, ValueError):
            raise AppError.of(ErrorMessage.INVALID_PAYLOAD)
        except (StorageWriteError, StorageUnavailable):
            raise AppError.of(ErrorMessage.SAVE_FAILED)
        return entry_id

    async def pending(self) -> List[QueueEntry]:
        try:
            return await self._store.queue_all()
        except StorageUnavailable:
            raise AppError.of(ErrorMessage.STORAGE_UNAVAILABLE)

    async def sync_now(self) -> SyncReport:
        if not self._monitor.online:
            return SyncReport(ok=False, error="offline")
        return await self._coordinator.drain()

    async def status(self) -> OfflineStatusResponse:
        try:
            pending = await self._store.queue_count()
        except StorageUnavailable:
            pending = 0
        worker = self._registration.active if self._registration else None
        return OfflineStatusResponse(
            online=self._monitor.online,
            pending=pending,
            worker=worker.state if worker else None,
            version=worker.config.version if worker else None,
        )
