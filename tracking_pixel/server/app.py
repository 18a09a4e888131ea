from __future__ import annotations

import time
from dataclasses import dataclass

from flask import Flask, Response, jsonify, request

from .config import PixelConfig
from .events import EventEmitter, RequestEvent, group_headers
from .identity import resolve_cookie
from .metrics import Metrics
from .pipeline import LogQueue


@dataclass(frozen=True)
class AppContext:
    """Everything the handler shares across requests. Built once at startup."""

    config: PixelConfig
    payload: bytes
    emitter: EventEmitter
    metrics: Metrics


def build_context(cfg: PixelConfig, *, payload: bytes, log_queue: LogQueue, metrics: Metrics) -> AppContext:
    emitter = EventEmitter(log_queue, metrics, block_when_full=(cfg.queue_full_policy == "block"))
    return AppContext(config=cfg, payload=payload, emitter=emitter, metrics=metrics)


def _client_ip(trust_proxy_headers: bool) -> str:
    if trust_proxy_headers:
        xff = request.headers.get("X-Forwarded-For")
        if xff:
            # Left-most is original client in standard practice.
            return xff.split(",")[0].strip()
    return request.remote_addr or ""


def _remote_address(trust_proxy_headers: bool) -> str:
    ip = _client_ip(trust_proxy_headers)
    port = request.environ.get("REMOTE_PORT")
    if port and ip == request.remote_addr:
        return f"{ip}:{port}"
    return ip


def _request_url() -> str:
    # Path plus raw query, as the client sent it.
    qs = request.query_string.decode("latin-1")
    return f"{request.path}?{qs}" if qs else request.path


def create_app(ctx: AppContext) -> Flask:
    cfg = ctx.config
    app = Flask(__name__)

    @app.get("/health")
    def health() -> Response:
        return jsonify({"status": "ok"})

    def pixel() -> Response:
        """
        Beacon endpoint: always answers with the configured image.

        Optional query args:
          - pid: client-supplied id, recorded with the event
        """
        time_start_us = time.time_ns() // 1000
        t0 = time.perf_counter_ns()

        cookie = resolve_cookie(request.cookies, name=cfg.cookie, expires=cfg.cookie_expires)

        resp = Response(ctx.payload, mimetype="image/png")
        resp.headers["Connection"] = "close"
        resp.set_cookie(cookie.name, cookie.value, expires=cookie.expires)

        event = RequestEvent(
            timestamp_micros=time_start_us,
            cookie_value=cookie.value,
            url=_request_url(),
            client_id=request.args.get("pid", default="", type=str),
            remote_address=_remote_address(cfg.trust_proxy_headers),
            headers=group_headers(request.headers.items()),
        )
        # Runs once the server has written the body and closed the response iterable.
        resp.call_on_close(lambda: ctx.emitter.spawn(event))

        elapsed_us = max(0, (time.perf_counter_ns() - t0) // 1000)
        ctx.metrics.timing("request.time", elapsed_us)
        return resp

    app.add_url_rule(cfg.path, "pixel", pixel, methods=["GET"])
    return app
