# core/worker.py
import logging
from typing import Dict, FrozenSet, Optional
from redis.exceptions import RedisError
from core.fetcher import Fetcher
from core.policy import decide, on_cache_miss
from model.proxy import (
    CachedHttpResponse,
    ProxyAction,
    ProxyPlan,
    ProxyRequest,
    WorkerConfig,
    WorkerState,
)
from repository.partition_repository import PartitionRepository
from util.errors import NetworkUnavailable, WorkerInstallError, WorkerStateError
from util.timing import timed

logger = logging.getLogger(__name__)

_TRANSITIONS: Dict[Optional[WorkerState], FrozenSet[WorkerState]] = {
    None: frozenset({WorkerState.INSTALLING}),
    WorkerState.INSTALLING: frozenset({WorkerState.WAITING, WorkerState.REDUNDANT}),
    WorkerState.WAITING: frozenset({WorkerState.ACTIVATING, WorkerState.REDUNDANT}),
    WorkerState.ACTIVATING: frozenset({WorkerState.ACTIVE, WorkerState.REDUNDANT}),
    WorkerState.ACTIVE: frozenset({WorkerState.REDUNDANT}),
    WorkerState.REDUNDANT: frozenset(),
}

# The cache layer refuses partial content.
_UNCACHEABLE_STATUS = frozenset({206})


class ServiceWorker:
    """
    One version of the installable network proxy.

    installing -> waiting -> activating -> active -> redundant

    Only an active worker applies the caching policy; in any other state
    requests go straight to the network.
    """

    def __init__(
        self,
        config: WorkerConfig,
        *,
        partitions: PartitionRepository,
        fetch: Fetcher,
    ) -> None:
        self.config = config
        self._partitions = partitions
        self._fetch = fetch
        self._state: Optional[WorkerState] = None
        self.controls_clients = False

    @property
    def state(self) -> Optional[WorkerState]:
        return self._state

    def _advance(self, to: WorkerState) -> None:
        if to not in _TRANSITIONS[self._state]:
            raise WorkerStateError(f"{self._state} -> {to.value}")
        logger.info(
            "worker.state version=%s from=%s to=%s",
            self.config.version,
            self._state.value if self._state else "parsed",
            to.value,
        )
        self._state = to

    # ---------------- Lifecycle ----------------

    async def install(self) -> None:
        """Pre-cache the manifest into the static partition, all or nothing."""
        self._advance(WorkerState.INSTALLING)
        static = self.config.partitions.static
        try:
            with timed(logger, "worker.install", version=self.config.version):
                fetched = []
                for path in self.config.manifest:
                    req = ProxyRequest(url=self.config.absolute(path))
                    res = await self._fetch(req)
                    if not res.ok:
                        raise WorkerInstallError(f"{path} answered {res.status}")
                    fetched.append((req.cache_key, res))
                await self._partitions.put_all(static, fetched)
        except (NetworkUnavailable, RedisError, WorkerInstallError) as e:
            self._advance(WorkerState.REDUNDANT)
            logger.error("worker.install.failed version=%s err=%s", self.config.version, e)
            if isinstance(e, WorkerInstallError):
                raise
            raise WorkerInstallError(str(e)) from e
        self._advance(WorkerState.WAITING)

    async def resume(self) -> None:
        """
        Re-enter the lifecycle for a version whose manifest was already
        cached by an earlier process, without touching the network.
        """
        self._advance(WorkerState.INSTALLING)
        static = self.config.partitions.static
        try:
            cached = set(await self._partitions.entry_keys(static))
        except RedisError as e:
            self._advance(WorkerState.REDUNDANT)
            raise WorkerInstallError(str(e)) from e
        expected = {ProxyRequest(url=self.config.absolute(p)).cache_key for p in self.config.manifest}
        if not expected <= cached:
            self._advance(WorkerState.REDUNDANT)
            raise WorkerInstallError(f"{static} is missing {len(expected - cached)} manifest entries")
        self._advance(WorkerState.WAITING)

    async def activate(self) -> None:
        """Drop every partition this version does not own, then take control."""
        self._advance(WorkerState.ACTIVATING)
        keep = self.config.partitions.names()
        with timed(logger, "worker.activate", version=self.config.version):
            for name in await self._partitions.keys():
                if name not in keep:
                    await self._partitions.delete(name)
                    logger.info("worker.partition.deleted name=%s", name)
            for name in sorted(keep):
                await self._partitions.open(name)
        self._advance(WorkerState.ACTIVE)
        self.controls_clients = True

    def retire(self) -> None:
        if self._state is WorkerState.REDUNDANT:
            return
        self._advance(WorkerState.REDUNDANT)
        self.controls_clients = False

    # ---------------- Fetch handling ----------------

    async def handle(self, request: ProxyRequest) -> CachedHttpResponse:
        if self._state is not WorkerState.ACTIVE:
            return await self._fetch(request)

        plan = decide(request, self.config)
        if plan.action is ProxyAction.PASS_THROUGH:
            return await self._fetch(request)
        if plan.action is ProxyAction.SERVE_CACHE:
            return await self._cache_first(request, plan)
        return await self._network_first(request, plan)

    async def _network_first(
        self, request: ProxyRequest, plan: ProxyPlan
    ) -> CachedHttpResponse:
        try:
            res = await self._fetch(request)
        except NetworkUnavailable:
            cached = await self._match(plan.partition, plan.fallback_key)
            if cached is None:
                logger.warning("proxy.fallback.miss url=%s", request.url)
                raise
            logger.info("proxy.fallback.hit url=%s key=%s", request.url, plan.fallback_key)
            return cached
        if plan.store_response:
            await self._put(plan.partition, request.cache_key, res)
        return res

    async def _cache_first(
        self, request: ProxyRequest, plan: ProxyPlan
    ) -> CachedHttpResponse:
        cached = await self._match(plan.partition, request.cache_key)
        if cached is not None:
            return cached

        plan = on_cache_miss(plan)
        try:
            res = await self._fetch(request)
        except NetworkUnavailable:
            # Another writer may have populated the entry meanwhile
            stale = await self._match(plan.partition, request.cache_key)
            if stale is None:
                raise
            return stale
        if plan.store_response:
            await self._put(plan.partition, request.cache_key, res)
        return res

    async def _match(
        self, partition: Optional[str], key: Optional[str]
    ) -> Optional[CachedHttpResponse]:
        if not partition or not key:
            return None
        try:
            return await self._partitions.match(partition, key)
        except (RedisError, ValueError) as e:
            # A broken cache read is a miss, never a failed request
            logger.warning("proxy.cache.read.error partition=%s err=%s", partition, type(e).__name__)
            return None

    async def _put(
        self, partition: Optional[str], key: str, res: CachedHttpResponse
    ) -> None:
        if not partition or res.status in _UNCACHEABLE_STATUS:
            return
        try:
            await self._partitions.put(partition, key, res)
        except RedisError as e:
            logger.warning("proxy.cache.write.error partition=%s err=%s", partition, type(e).__name__)


class WorkerRegistration:
    """
    Tracks the controlling worker across versions.

    A new version installs while the current one keeps serving. On success it
    is promoted straight away (no waiting for reloads) and the old one turns
    redundant; on failure the old one stays in control.
    """

    def __init__(self, *, partitions: PartitionRepository, fetch: Fetcher) -> None:
        self._partitions = partitions
        self._fetch = fetch
        self.active: Optional[ServiceWorker] = None

    async def register(self, config: WorkerConfig) -> ServiceWorker:
        if self.active is not None and self.active.config == config:
            return self.active

        candidate = ServiceWorker(config, partitions=self._partitions, fetch=self._fetch)
        try:
            await candidate.install()
        except WorkerInstallError:
            if self.active is not None:
                raise
            # Nothing in control yet: reuse what an earlier run installed
            candidate = ServiceWorker(config, partitions=self._partitions, fetch=self._fetch)
            await candidate.resume()
            logger.info("worker.resumed version=%s", config.version)

        previous = self.active
        if previous is not None:
            previous.retire()
        await candidate.activate()
        self.active = candidate
        logger.info(
            "worker.registered version=%s previous=%s",
            config.version,
            previous.config.version if previous else "-",
        )
        return candidate

    def unregister(self) -> None:
        if self.active is not None:
            self.active.retire()
            logger.info("worker.unregistered version=%s", self.active.config.version)
        self.active = None

    async def handle(self, request: ProxyRequest) -> CachedHttpResponse:
        if self.active is None:
            return await self._fetch(request)
        return await self.active.handle(request)
