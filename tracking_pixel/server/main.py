from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from .app import build_context, create_app
from .config import DEFAULT_CONFIG_PATH, ConfigError, load_config
from .logs import configure_logging
from .metrics import Metrics
from .pipeline import LogConsumer, LogQueue, event_sink
from .pixel import decode_payload


log = logging.getLogger(__name__)

PROG = "tracking-pixel"


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog=PROG, description="Tracking pixel server")
    ap.add_argument(
        "--config",
        default=os.getenv("TRACKING_PIXEL_CONFIG", DEFAULT_CONFIG_PATH),
        help="Path to config.yaml",
    )
    ap.add_argument("--host", default=None, help="Override pixel.host")
    ap.add_argument("--port", type=int, default=None, help="Override pixel.port")
    args = ap.parse_args(argv)

    # Startup failures are fatal.
    try:
        cfg = load_config(args.config)
        configure_logging(cfg.logging)
        payload = decode_payload(cfg.base64)
        metrics = Metrics.connect(cfg.statsd, prefix=cfg.nodename)
    except ConfigError as exc:
        print(f"{PROG}: error: {exc}", file=sys.stderr)
        return 1

    log_queue = LogQueue(cfg.chanbufsize)
    LogConsumer(log_queue, event_sink()).start()

    ctx = build_context(cfg, payload=payload, log_queue=log_queue, metrics=metrics)
    app = create_app(ctx)

    host = args.host or cfg.host
    port = args.port or cfg.port
    log.info("serving %s on %s:%d (queue capacity %d, policy %s)", cfg.path, host, port, cfg.chanbufsize, cfg.queue_full_policy)
    app.run(host=host, port=port, threaded=True, debug=False, use_reloader=False)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
