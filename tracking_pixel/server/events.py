from __future__ import annotations

import enum
import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Tuple

from .metrics import Metrics
from .pipeline import LogQueue


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestEvent:
    timestamp_micros: int
    cookie_value: str
    url: str
    client_id: str
    remote_address: str
    headers: Dict[str, List[str]] = field(default_factory=dict)


class EmitResult(enum.Enum):
    ENQUEUED = "enqueued"
    SERIALIZE_FAILED = "serialize_failed"
    DROPPED = "dropped"


def group_headers(items: Iterable[Tuple[str, str]]) -> Dict[str, List[str]]:
    """Collapse (name, value) pairs into name -> values, keeping arrival order."""
    out: Dict[str, List[str]] = {}
    for k, v in items:
        out.setdefault(k, []).append(v)
    return out


def serialize_event(event: RequestEvent) -> bytes:
    """
    UTF-8 JSON object. Raises ValueError/TypeError for values JSON can't carry
    (e.g. lone surrogates smuggled in through header bytes).
    """
    doc = {
        "Timestamp": event.timestamp_micros,
        "Cookie": event.cookie_value,
        "Url": event.url,
        "Pid": event.client_id,
        "RemoteAddr": event.remote_address,
        "Headers": event.headers,
    }
    return json.dumps(doc, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


class EventEmitter:
    def __init__(self, log_queue: LogQueue, metrics: Metrics, *, block_when_full: bool = True) -> None:
        self._queue = log_queue
        self._metrics = metrics
        self._block = block_when_full

    def emit(self, event: RequestEvent) -> EmitResult:
        try:
            data = serialize_event(event)
        except (TypeError, ValueError) as exc:
            log.warning("can't marshal request event to JSON: %s", exc)
            self._metrics.incr("events.serialize_failed")
            return EmitResult.SERIALIZE_FAILED

        if not self._queue.push(data, block=self._block):
            log.warning("log queue full (capacity %d), dropping event for %s", self._queue.capacity, event.url)
            self._metrics.incr("events.dropped")
            return EmitResult.DROPPED
        return EmitResult.ENQUEUED

    def _emit_detached(self, event: RequestEvent) -> None:
        # Best-effort: the outcome was already logged inside emit().
        _ = self.emit(event)

    def spawn(self, event: RequestEvent) -> threading.Thread:
        t = threading.Thread(target=self._emit_detached, args=(event,), name="pixel-emit", daemon=True)
        t.start()
        return t
