from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone

_B36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_B36[r])
    return "".join(reversed(out))


def generate_id() -> str:
    """Opaque record id: epoch milliseconds in base 36 + 5 random base-36 chars."""
    suffix = "".join(secrets.choice(_B36) for _ in range(5))
    return _to_base36(int(time.time() * 1000)) + suffix


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


OPERATE_TYPES = ("receive", "putaway")


def normalize_operate_type(value: object) -> str:
    """Lower-case ``receive`` / ``putaway``; anything else becomes ``receive``."""
    txt = str(value or "").strip().lower()
    return txt if txt in OPERATE_TYPES else "receive"


def require_text(value: object, name: str) -> str:
    txt = str(value or "").strip()
    if not txt:
        raise ValueError(f"{name} must not be blank")
    return txt


def ensure_utc(value: object) -> object:
    """Naive datetimes (SQLite, older remotes) are taken to be UTC."""
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
