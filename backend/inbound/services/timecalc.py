"""
timecalc.py

Timestamp codec and elapsed-time metrics for the inbound logs.

Stored timestamps use the ``M/D/YYYY hh:mm:ss`` encoding (24h clock): month
and day are *not* zero-padded, hour/minute/second are. Existing records rely
on that asymmetry, so :func:`format_timestamp` must keep producing it.

Interval metrics:

* **receive → putaway** – per receipt number, latest putaway minus earliest
  receive; averaged over receipts that have both.
* **arrival → putaway (lead time)** – per PO number, latest putaway of any of
  its receipts minus the earliest arrival; averaged over POs.

Records with missing or unparseable timestamps are skipped, never fatal.
"""
from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Iterable, Mapping, Optional

import pandas as pd

from inbound.services.reconcile import field_of, operate_type_of, receipt_key

NO_DATA = "-"

_TS_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})\s+(\d{1,2}):(\d{2}):(\d{2})$")


# --------------------------------------------------------------------------- #
# codec                                                                       #
# --------------------------------------------------------------------------- #
def parse_timestamp(value: object) -> Optional[datetime]:
    """Parse ``M/D/YYYY hh:mm:ss``; fall back to generic parsing; ``None`` if hopeless.

    The result is a naive local wall-clock ``datetime``. Timezone-aware inputs
    (e.g. ISO strings with ``Z``) are converted to local time first.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    txt = str(value).strip()
    if not txt:
        return None

    m = _TS_RE.match(txt)
    if m:
        month, day, year, hh, mm, ss = (int(g) for g in m.groups())
        try:
            return datetime(year, month, day, hh, mm, ss)
        except ValueError:
            return None

    # fallback: generic parser (ISO 8601, "2026-02-13 08:01", ...)
    try:
        ts = pd.to_datetime(txt, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    dt = ts.to_pydatetime()
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def format_timestamp(dt: datetime) -> str:
    """``datetime`` → ``M/D/YYYY hh:mm:ss`` (unpadded month/day)."""
    return f"{dt.month}/{dt.day}/{dt.year} {dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"


def format_hms(total_seconds: float) -> str:
    """Seconds → ``HH:MM:SS`` (hours keep growing past 99)."""
    secs = max(int(total_seconds), 0)
    h, rem = divmod(secs, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def parse_hms(text: object) -> int:
    """``HH:MM:SS`` → seconds; anything else → 0."""
    parts = str(text or "").split(":")
    if len(parts) != 3:
        return 0
    try:
        h, m, s = (int(p) for p in parts)
    except ValueError:
        return 0
    return h * 3600 + m * 60 + s


def format_elapsed(total_seconds: float) -> str:
    """Seconds → ``"{d}d {h}h {m}m"``.

    Days only when non-zero, hours whenever days or hours are non-zero,
    minutes always.
    """
    secs = max(int(total_seconds), 0)
    days, rem = divmod(secs, 86400)
    hours, rem = divmod(rem, 3600)
    mins = rem // 60
    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0 or days > 0:
        parts.append(f"{hours}h")
    parts.append(f"{mins}m")
    return " ".join(parts)


# --------------------------------------------------------------------------- #
# interval metrics                                                            #
# --------------------------------------------------------------------------- #
def _mean_seconds(durations: list[float]) -> Optional[int]:
    if not durations:
        return None
    return math.floor(sum(durations) / len(durations))


def receive_to_putaway_intervals(transactions: Iterable[Mapping]) -> dict[str, float]:
    """Per receipt key: seconds between earliest receive and latest putaway (>0 only)."""
    groups: dict[str, dict[str, list[datetime]]] = {}
    for t in transactions:
        key = receipt_key(field_of(t, "receipt_no"))
        raw_time = field_of(t, "time_transaction")
        if not key or not raw_time:
            continue
        dt = parse_timestamp(raw_time)
        if dt is None:
            continue
        op = operate_type_of(t)
        if op not in ("receive", "putaway"):
            continue
        groups.setdefault(key, {"receive": [], "putaway": []})[op].append(dt)

    out: dict[str, float] = {}
    for key, g in groups.items():
        if not g["receive"] or not g["putaway"]:
            continue
        diff = (max(g["putaway"]) - min(g["receive"])).total_seconds()
        if diff > 0:
            out[key] = diff
    return out


def avg_receive_to_putaway_seconds(transactions: Iterable[Mapping]) -> Optional[int]:
    return _mean_seconds(list(receive_to_putaway_intervals(transactions).values()))


def lead_times(arrivals: Iterable[Mapping], transactions: Iterable[Mapping]) -> dict[str, float]:
    """Per PO key: seconds between earliest arrival and latest putaway of its receipts."""
    latest_putaway: dict[str, datetime] = {}
    for t in transactions:
        if operate_type_of(t) != "putaway":
            continue
        key = receipt_key(field_of(t, "receipt_no"))
        raw_time = field_of(t, "time_transaction")
        if not key or not raw_time:
            continue
        dt = parse_timestamp(raw_time)
        if dt is None:
            continue
        if key not in latest_putaway or dt > latest_putaway[key]:
            latest_putaway[key] = dt

    po_map: dict[str, dict[str, Optional[datetime]]] = {}
    for a in arrivals:
        raw_time = field_of(a, "arrival_time")
        po_no = field_of(a, "po_no")
        if not raw_time or not po_no:
            continue
        arrived = parse_timestamp(raw_time)
        if arrived is None:
            continue
        po_key = str(po_no).strip().lower()
        entry = po_map.setdefault(po_key, {"arrival": arrived, "putaway": None})
        if arrived < entry["arrival"]:
            entry["arrival"] = arrived
        put = latest_putaway.get(receipt_key(field_of(a, "receipt_no")))
        if put is not None and (entry["putaway"] is None or put > entry["putaway"]):
            entry["putaway"] = put

    out: dict[str, float] = {}
    for po_key, entry in po_map.items():
        if entry["putaway"] is None:
            continue
        diff = (entry["putaway"] - entry["arrival"]).total_seconds()
        if diff > 0:
            out[po_key] = diff
    return out


def avg_lead_time_seconds(arrivals: Iterable[Mapping], transactions: Iterable[Mapping]) -> Optional[int]:
    return _mean_seconds(list(lead_times(arrivals, transactions).values()))


def display_elapsed(seconds: Optional[int]) -> str:
    """Mean interval for the dashboard; ``-`` when nothing qualified."""
    return NO_DATA if seconds is None else format_elapsed(seconds)
