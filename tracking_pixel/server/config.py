from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import yaml


ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
DEFAULT_CONFIG_PATH = os.path.join(ROOT_DIR, "config.yaml")

QUEUE_POLICIES = ("block", "drop")


class ConfigError(Exception):
    """Startup configuration is unreadable or invalid."""


@dataclass(frozen=True)
class PixelConfig:
    cookie: str
    base64: Optional[str] = None
    chanbufsize: int = 1000
    nodename: str = "pixel"
    host: str = "0.0.0.0"
    port: int = 8080
    path: str = "/pixel"
    statsd: str = ""
    cookie_expires: datetime = datetime(2038, 1, 1, tzinfo=timezone.utc)
    queue_full_policy: str = "block"
    trust_proxy_headers: bool = False
    logging: Optional[Dict[str, Any]] = field(default=None, compare=False)


def _int_field(raw: Dict[str, Any], key: str, default: int, *, lo: int, hi: int) -> int:
    value = raw.get(key, default)
    if isinstance(value, bool):
        raise ConfigError(f"pixel.{key} must be an integer, got {value!r}")
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"pixel.{key} must be an integer, got {value!r}") from None
    if n < lo or n > hi:
        raise ConfigError(f"pixel.{key} must be between {lo} and {hi}, got {n}")
    return n


def _bool_field(raw: Dict[str, Any], key: str, default: bool) -> bool:
    value = raw.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"pixel.{key} must be true or false, got {value!r}")
    return value


def _str_field(raw: Dict[str, Any], key: str, default: Optional[str] = None) -> str:
    value = raw.get(key, default)
    if value is None:
        raise ConfigError(f"pixel.{key} is required")
    return str(value).strip()


def parse_expiry(value: Any) -> datetime:
    """Accepts a datetime (YAML timestamps) or an ISO-8601 string; naive values are UTC."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise ConfigError(f"pixel.cookie_expires is not an ISO-8601 timestamp: {value!r}") from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def config_from_dict(data: Dict[str, Any]) -> PixelConfig:
    raw = data.get("pixel")
    if not isinstance(raw, dict):
        raise ConfigError("missing 'pixel' section")

    cookie = _str_field(raw, "cookie")
    if not cookie:
        raise ConfigError("pixel.cookie must not be empty")

    path = _str_field(raw, "path", "/pixel")
    if not path.startswith("/"):
        raise ConfigError(f"pixel.path must start with '/', got {path!r}")
    if path == "/health":
        raise ConfigError("pixel.path must not be /health (reserved for the health check)")

    policy = _str_field(raw, "queue_full_policy", "block").lower()
    if policy not in QUEUE_POLICIES:
        raise ConfigError(f"pixel.queue_full_policy must be one of {', '.join(QUEUE_POLICIES)}, got {policy!r}")

    logging_cfg = data.get("logging")
    if logging_cfg is not None and not isinstance(logging_cfg, dict):
        raise ConfigError("'logging' section must be a mapping")

    encoded = raw.get("base64")
    return PixelConfig(
        cookie=cookie,
        base64=str(encoded).strip() if encoded is not None else None,
        chanbufsize=_int_field(raw, "chanbufsize", 1000, lo=1, hi=10_000_000),
        nodename=_str_field(raw, "nodename", "pixel"),
        host=_str_field(raw, "host", "0.0.0.0"),
        port=_int_field(raw, "port", 8080, lo=1, hi=65535),
        path=path,
        statsd=str(raw.get("statsd") or "").strip(),
        cookie_expires=parse_expiry(raw.get("cookie_expires", "2038-01-01T00:00:00Z")),
        queue_full_policy=policy,
        trust_proxy_headers=_bool_field(raw, "trust_proxy_headers", False),
        logging=logging_cfg,
    )


def load_config(path: str) -> PixelConfig:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"could not open {path!r} for reading: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"could not parse YAML configuration in {path!r}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"configuration in {path!r} must be a mapping")
    try:
        return config_from_dict(data)
    except ConfigError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
