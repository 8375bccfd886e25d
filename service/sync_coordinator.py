import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set
from redis.exceptions import RedisError
from core.connectivity import ConnectivityMonitor
from model.api import SyncReport
from model.store import QueueEntry
from service.backend_client import BackendClient
from service.sms_service import SmsService
from util.errors import OfflineError, SyncDeliveryFailure
from util.timing import timed

logger = logging.getLogger(__name__)

Replayer = Callable[[QueueEntry], Awaitable[None]]

NOTES_TABLE = "offline_notes"


class BackendReplayer:
    """
    Delivers one queued write. Payload shape: ``{"type": ..., "data": ...}``.

    insert/update/delete carry ``{"table", "values", "eq"}``; note carries the
    note text; sms carries ``{"phone", "message"}``. Raises SyncDeliveryFailure
    for anything that did not land.
    """

    def __init__(self, backend: BackendClient, sms: SmsService) -> None:
        self._backend = backend
        self._sms = sms

    async def __call__(self, entry: QueueEntry) -> None:
        payload = entry.payload if isinstance(entry.payload, dict) else {}
        kind = payload.get("type")
        data: Any = payload.get("data")
        try:
            if kind == "insert":
                await self._backend.insert(data["table"], data["values"])
            elif kind == "update":
                await self._backend.update(data["table"], data["values"], eq=data["eq"])
            elif kind == "delete":
                await self._backend.delete(data["table"], eq=data["eq"])
            elif kind == "note":
                await self._backend.insert(NOTES_TABLE, {"body": data, "queued_at": entry.enqueuedAt})
            elif kind == "sms":
                result = await self._sms.send(data["phone"], data["message"])
                if not result.ok:
                    raise SyncDeliveryFailure(entry.id, result.error or "sms rejected")
            else:
                raise SyncDeliveryFailure(entry.id, f"unknown type {kind!r}")
        except (KeyError, TypeError) as e:
            raise SyncDeliveryFailure(entry.id, f"malformed payload: {e}") from e
        except SyncDeliveryFailure:
            raise
        except OfflineError as e:
            raise SyncDeliveryFailure(entry.id, str(e)) from e


class SyncCoordinator:
    """
    Drains the sync queue when connectivity comes back.

    Flow:
    - Subscribe to the monitor; an offline -> online edge schedules one drain.
    - Drain = read one snapshot, deliver in id order, stop at the first failure.
    - The queue is cleared only if every entry was delivered; otherwise it is
      left untouched and the next online edge resends all of it, so delivered
      entries may be replayed.
    """

    def __init__(self, store, replay: Replayer, monitor: ConnectivityMonitor) -> None:
        self._store = store
        self._replay = replay
        self._monitor = monitor
        self._lock = asyncio.Lock()
        self._last_online: Optional[bool] = None
        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.last_report: Optional[SyncReport] = None

    async def start(self) -> Optional[SyncReport]:
        """Subscribe, then drain once if already online with work pending."""
        self._unsubscribe = self._monitor.subscribe(self._on_status)
        if self._monitor.online and await self._store.queue_count() > 0:
            return await self.drain()
        return None

    async def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.wait_idle()

    def _on_status(self, online: bool) -> None:
        rising = online and self._last_online is False
        self._last_online = online
        if rising:
            logger.info("sync.trigger reason=online")
            task = asyncio.get_running_loop().create_task(self.drain())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait for every scheduled drain, including ones started while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def drain(self) -> SyncReport:
        async with self._lock:
            with timed(logger, "sync.drain"):
                report = await self._drain_once()
        self.last_report = report
        return report

    async def _drain_once(self) -> SyncReport:
        try:
            pending = await self._store.queue_all()
        except (OfflineError, RedisError) as e:
            logger.error("sync.snapshot.error err=%s", e)
            return SyncReport(ok=False, error=str(e))

        if not pending:
            return SyncReport(ok=True)

        delivered = 0
        for entry in pending:
            try:
                await self._replay(entry)
            except Exception as e:
                reason = e.reason if isinstance(e, SyncDeliveryFailure) else type(e).__name__
                logger.warning("sync.drain.failed id=%d reason=%s kept=%d", entry.id, reason, len(pending))
                return SyncReport(
                    ok=False,
                    attempted=len(pending),
                    delivered=delivered,
                    failedId=entry.id,
                    error=reason,
                )
            delivered += 1

        try:
            await self._store.queue_clear()
        except (OfflineError, RedisError) as e:
            logger.error("sync.clear.error err=%s", e)
            return SyncReport(ok=False, attempted=len(pending), delivered=delivered, error=str(e))

        logger.info("sync.drain.ok delivered=%d", delivered)
        return SyncReport(ok=True, attempted=len(pending), delivered=delivered, cleared=True)
