from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Optional


log = logging.getLogger(__name__)

# Used only when the OS random source is unavailable.
_fallback_rng = random.Random()


@dataclass(frozen=True)
class VisitorCookie:
    name: str
    value: str
    expires: Optional[datetime] = None
    is_new: bool = False


def new_visitor_id() -> str:
    """
    Random 128-bit visitor id in UUID4 text form.

    Never raises: if os.urandom fails, the id is built from a process-local PRNG.
    """
    try:
        return str(uuid.uuid4())
    except (OSError, NotImplementedError) as exc:
        log.warning("OS random source unavailable (%s), using fallback PRNG for visitor id", exc)
        return str(uuid.UUID(int=_fallback_rng.getrandbits(128), version=4))


def resolve_cookie(cookies: Mapping[str, str], *, name: str, expires: datetime) -> VisitorCookie:
    value = cookies.get(name)
    if value:
        # Browsers never send the expiry back; re-issue with the configured one
        # so a returning visitor keeps a persistent cookie.
        return VisitorCookie(name=name, value=value, expires=expires)
    return VisitorCookie(name=name, value=new_visitor_id(), expires=expires, is_new=True)
