"""
Process-wide fan-out bus.

Every connected observer owns a bounded FIFO queue and one pump task that
drains it into the observer's sink (for Socket.IO sessions the sink emits to
that session id). `broadcast` only enqueues, so it never waits on a slow
client, and per-observer delivery order equals broadcast order.

Observer lifecycle:

    connecting ──► connected ──► disconnected (terminal)

A disconnected observer receives nothing further and nothing is replayed; an
observer that connects after a broadcast never sees that event. A sink
failure or a full backlog disconnects that one observer and is otherwise
ignored: the mutation that produced the event has already committed.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol

from socialhub.config import settings
from socialhub.telemetry import (
    BROADCASTS_TOTAL,
    CONNECTED_OBSERVERS,
    DROPPED_DELIVERIES_TOTAL,
    RELAY_ERRORS_TOTAL,
)

logger = logging.getLogger(__name__)

Sink = Callable[[str, dict[str, Any]], Awaitable[None]]


class Relay(Protocol):
    async def publish(self, event: str, payload: dict[str, Any]) -> None:
        ...


class ObserverState(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class Observer:
    def __init__(
        self,
        observer_id: str,
        sink: Sink,
        queue_size: int,
        on_failure: Callable[["Observer", str], None],
    ) -> None:
        self.id = observer_id
        self.state = ObserverState.CONNECTING
        self._sink = sink
        self._on_failure = on_failure
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(
            self._pump(), name=f"observer:{self.id}"
        )
        self.state = ObserverState.CONNECTED

    def offer(self, event: str, payload: dict[str, Any]) -> bool:
        """Enqueue without waiting. False when the backlog is full."""
        if self.state is not ObserverState.CONNECTED:
            return False
        try:
            self._queue.put_nowait((event, payload))
        except asyncio.QueueFull:
            return False
        return True

    async def join(self) -> None:
        await self._queue.join()

    def close(self) -> Optional[asyncio.Task]:
        if self.state is ObserverState.DISCONNECTED:
            return None
        self.state = ObserverState.DISCONNECTED
        self._discard_pending()
        task = self._task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        return task

    def _discard_pending(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            self._queue.task_done()

    async def _pump(self) -> None:
        while self.state is ObserverState.CONNECTED:
            event, payload = await self._queue.get()
            try:
                await self._sink(event, payload)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Delivery of %s to observer %s failed: %s", event, self.id, exc)
                self._on_failure(self, "send_failed")
            finally:
                self._queue.task_done()


class Broadcaster:
    def __init__(self, queue_size: Optional[int] = None, relay: Optional[Relay] = None) -> None:
        self._observers: dict[str, Observer] = {}
        self._queue_size = queue_size or settings.observer_queue_size
        self._relay = relay

    def attach_relay(self, relay: Optional[Relay]) -> None:
        self._relay = relay

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def is_connected(self, observer_id: str) -> bool:
        return observer_id in self._observers

    def connect(self, observer_id: str, sink: Sink) -> Observer:
        """Register an observer; it receives every broadcast from now on."""
        if observer_id in self._observers:
            self.disconnect(observer_id)
        observer = Observer(observer_id, sink, self._queue_size, self._drop)
        self._observers[observer_id] = observer
        observer.start()
        CONNECTED_OBSERVERS.set(len(self._observers))
        logger.debug("Observer %s connected (%d total)", observer_id, len(self._observers))
        return observer

    def disconnect(self, observer_id: str) -> None:
        observer = self._observers.pop(observer_id, None)
        if observer is None:
            return
        observer.close()
        CONNECTED_OBSERVERS.set(len(self._observers))
        logger.debug("Observer %s disconnected (%d total)", observer_id, len(self._observers))

    async def broadcast(self, event: str, payload: dict[str, Any]) -> int:
        """
        Fan `event` out to every connected observer, the originator included.

        Returns the number of local observers the event was queued for.
        Never raises because of a delivery or relay problem.
        """
        queued = self.deliver_local(event, payload)
        BROADCASTS_TOTAL.labels(event=event).inc()

        if self._relay is not None:
            try:
                await self._relay.publish(event, payload)
            except Exception as exc:
                RELAY_ERRORS_TOTAL.inc()
                logger.warning("Relay publish of %s failed: %s", event, exc)
        return queued

    def deliver_local(self, event: str, payload: dict[str, Any]) -> int:
        """Queue an event for local observers only (used by the relay listener)."""
        queued = 0
        for observer in list(self._observers.values()):
            if observer.offer(event, payload):
                queued += 1
            elif observer.state is ObserverState.CONNECTED:
                logger.warning(
                    "Observer %s fell behind (%d pending); disconnecting",
                    observer.id, observer.pending,
                )
                self._drop(observer, "backlog_full")
        return queued

    async def drain(self) -> None:
        """Wait until every connected observer has consumed its backlog."""
        await asyncio.gather(*(o.join() for o in list(self._observers.values())))

    async def close(self) -> None:
        tasks = []
        for observer_id in list(self._observers):
            observer = self._observers.pop(observer_id)
            task = observer.close()
            if task is not None:
                tasks.append(task)
        CONNECTED_OBSERVERS.set(0)
        await asyncio.gather(*tasks, return_exceptions=True)

    def _drop(self, observer: Observer, reason: str) -> None:
        DROPPED_DELIVERIES_TOTAL.labels(reason=reason).inc()
        if self._observers.get(observer.id) is observer:
            self.disconnect(observer.id)
        else:
            observer.close()
