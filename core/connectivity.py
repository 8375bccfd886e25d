import asyncio
import itertools
import logging
from typing import AsyncIterator, Callable, Dict, Literal

logger = logging.getLogger(__name__)

ConnectivityEvent = Literal["online", "offline"]
Listener = Callable[[bool], None]


class ConnectivityMonitor:
    """
    Holds the online/offline flag reported by the host environment.

    The value is the initial snapshot overwritten by each "online"/"offline"
    event, nothing else: no probing, no debouncing. A host that claims to be
    online but cannot reach the backend is still reported online.
    """

    def __init__(self, initial: bool = True) -> None:
        self._online = bool(initial)
        self._listeners: Dict[int, Listener] = {}
        self._ids = itertools.count(1)

    @property
    def online(self) -> bool:
        return self._online

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with the current value now and on every event after."""
        token = next(self._ids)
        self._listeners[token] = listener
        listener(self._online)

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def dispatch(self, event: ConnectivityEvent) -> bool:
        if event not in ("online", "offline"):
            raise ValueError(f"unknown connectivity event: {event}")
        self._online = event == "online"
        logger.info("connectivity.%s listeners=%d", event, len(self._listeners))
        for token, listener in list(self._listeners.items()):
            try:
                listener(self._online)
            except Exception:
                # One broken consumer must not starve the others
                logger.exception("connectivity.listener.error token=%d", token)
        return self._online

    async def changes(self) -> AsyncIterator[bool]:
        """Async view of subscribe(): snapshot first, then each event."""
        queue: asyncio.Queue[bool] = asyncio.Queue()
        unsubscribe = self.subscribe(queue.put_nowait)
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()
