from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional

from .logs import EVENTS_LOGGER, TRACE


log = logging.getLogger(__name__)

Sink = Callable[[bytes], None]


class LogQueue:
    """Bounded FIFO of serialized events. Many producers, one consumer."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"log queue capacity must be >= 1, got {capacity}")
        self._capacity = int(capacity)
        self._q: "queue.Queue[bytes]" = queue.Queue(maxsize=self._capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def qsize(self) -> int:
        return self._q.qsize()

    def push(self, data: bytes, *, block: bool = True) -> bool:
        """Enqueue; blocks while full unless block=False, in which case a full queue returns False."""
        if block:
            self._q.put(data)
            return True
        try:
            self._q.put_nowait(data)
        except queue.Full:
            return False
        return True

    def pop(self, timeout: Optional[float] = None) -> bytes:
        # Raises queue.Empty when a timeout is given and nothing arrives.
        return self._q.get(timeout=timeout)


def event_sink(logger: Optional[logging.Logger] = None) -> Sink:
    target = logger or logging.getLogger(EVENTS_LOGGER)

    def write(data: bytes) -> None:
        target.log(TRACE, "%s", data.decode("utf-8", errors="replace"))

    return write


class LogConsumer:
    def __init__(self, log_queue: LogQueue, sink: Sink) -> None:
        self._queue = log_queue
        self._sink = sink
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def drain_one(self, timeout: Optional[float] = None) -> bytes:
        data = self._queue.pop(timeout=timeout)
        self._sink(data)
        return data

    def _run(self) -> None:
        while True:
            try:
                self.drain_one()
            except Exception:
                log.exception("log sink failed, event lost")

    def start(self) -> threading.Thread:
        with self._lock:
            if self._thread is not None:
                raise RuntimeError("log consumer already started")
            self._thread = threading.Thread(target=self._run, name="pixel-logger", daemon=True)
            self._thread.start()
            return self._thread
