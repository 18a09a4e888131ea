from __future__ import annotations

import base64
import binascii
from typing import Optional

from .config import ConfigError


# 1×1 transparent PNG (hardcoded, valid)
_TRANSPARENT_1X1_PNG = bytes.fromhex(
    "89504E470D0A1A0A0000000D49484452000000010000000108060000001F15C489"
    "0000000A49444154789C63000100000500010D0A2DB40000000049454E44AE426082"
)


def transparent_pixel_png() -> bytes:
    return _TRANSPARENT_1X1_PNG


def decode_payload(encoded: Optional[str]) -> bytes:
    """
    Decode the configured base64 image once at startup.

    None means "not configured" and yields the built-in transparent pixel.
    Whitespace (e.g. YAML block scalars) is ignored.
    """
    if encoded is None:
        return transparent_pixel_png()
    compact = "".join(encoded.split())
    if not compact:
        raise ConfigError("pixel.base64 is empty")
    try:
        data = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConfigError(f"pixel.base64 is not valid base64: {exc}") from exc
    if not data:
        raise ConfigError("pixel.base64 decodes to an empty image")
    return data
