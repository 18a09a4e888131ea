from __future__ import annotations

import logging
from typing import Any, Optional

from statsd import StatsClient

from .config import ConfigError


log = logging.getLogger(__name__)

DEFAULT_STATSD_PORT = 8125


def parse_address(address: str) -> tuple[str, int]:
    host, sep, port = address.strip().rpartition(":")
    if not sep:
        return address.strip(), DEFAULT_STATSD_PORT
    host = host.strip("[]")
    if not host or not port.isdigit():
        raise ConfigError(f"pixel.statsd must look like host:port, got {address!r}")
    return host, int(port)


class Metrics:
    """
    Thin wrapper over a StatsD client.

    A missing client disables emission. Send failures are logged and dropped;
    metrics never affect request handling.
    """

    def __init__(self, client: Optional[Any] = None) -> None:
        self._client = client

    @classmethod
    def connect(cls, address: str, *, prefix: str) -> "Metrics":
        if not address:
            log.info("statsd address not configured, metrics disabled")
            return cls(None)
        host, port = parse_address(address)
        try:
            client = StatsClient(host=host, port=port, prefix=prefix or None)
        except OSError as exc:
            raise ConfigError(f"could not set up statsd client for {address!r}: {exc}") from exc
        return cls(client)

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def timing(self, name: str, value: float) -> None:
        if self._client is None:
            return
        try:
            self._client.timing(name, value)
        except Exception as exc:
            log.warning("can't send timing %s: %s", name, exc)

    def incr(self, name: str, count: int = 1) -> None:
        if self._client is None:
            return
        try:
            self._client.incr(name, count)
        except Exception as exc:
            log.warning("can't send counter %s: %s", name, exc)
