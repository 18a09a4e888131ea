from __future__ import annotations

import logging
import logging.config
import sys
from typing import Any, Dict, Optional

from .config import ConfigError


# Below DEBUG; raw beacon events are written at this level.
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

EVENTS_LOGGER = "tracking_pixel.events"


def configure_logging(cfg: Optional[Dict[str, Any]]) -> None:
    if not cfg:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
        # Without a dedicated handler, TRACE events would be filtered at INFO.
        events = logging.getLogger(EVENTS_LOGGER)
        events.setLevel(TRACE)
        if not events.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter("%(message)s"))
            events.addHandler(handler)
        events.propagate = False
        return
    try:
        logging.config.dictConfig(cfg)
    except (ValueError, TypeError, AttributeError, ImportError) as exc:
        raise ConfigError(f"invalid logging configuration: {exc}") from exc
