"""
csv_io.py

CSV import / export of the three record kinds.

Import
------
The uploaded header row is matched to the expected labels of the kind,
case-insensitively, in three passes:

1. exact label
2. equal after mapping ``_`` / ``-`` to spaces
3. one label contains the other

Expected labels with no matching column read as empty strings. Blank lines are
skipped. A row is accepted when the fields the ``*Create`` schema requires are
present (receipt / PO number, receipt / SKU, SKU); everything else is reported
back with its CSV row number (header = row 1) and the other rows are still
imported.

Export
------
UTF-8 with BOM, comma separated, header row with the display labels,
fields quoted only when needed.
"""
from __future__ import annotations

import io
import logging
import re
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd
from pydantic import ValidationError

from inbound.models import KINDS
from inbound.services.reconcile import arrival_rows, to_int
from inbound.services.timecalc import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

BOM = "\ufeff"

# (CSV label, record field) in column order
IMPORT_COLUMNS: dict[str, list[tuple[str, str]]] = {
    "arrivals": [
        ("Tanggal Kedatangan", "date"),
        ("Waktu Kedatangan", "arrival_time"),
        ("Brand", "brand"),
        ("Receipt No", "receipt_no"),
        ("PO No", "po_no"),
        ("PO Qty", "po_qty"),
        ("Operator", "operator"),
        ("Note", "note"),
    ],
    "transactions": [
        ("Tanggal Transaksi", "date"),
        ("Time Transaction", "time_transaction"),
        ("Receipt No", "receipt_no"),
        ("SKU", "sku"),
        ("Operate Type", "operate_type"),
        ("Qty", "qty"),
        ("Operator", "operator"),
    ],
    "vas": [
        ("Tanggal", "date"),
        ("Brand", "brand"),
        ("SKU", "sku"),
        ("Tipe VAS", "vas_type"),
        ("Qty", "qty"),
        ("Operator", "operator"),
    ],
}

EXPORT_COLUMNS: dict[str, list[tuple[str, str]]] = {
    "arrivals": [
        ("Tanggal Kedatangan", "date"),
        ("Waktu Kedatangan", "arrival_time"),
        ("Brand", "brand"),
        ("Receipt No", "receipt_no"),
        ("PO No", "po_no"),
        ("PO Qty", "po_qty"),
        ("Receive Qty", "receive_qty"),
        ("Putaway Qty", "putaway_qty"),
        ("Pending Qty", "pending_qty"),
        ("Operator", "operator"),
        ("Note", "note"),
    ],
    "transactions": IMPORT_COLUMNS["transactions"],
    "vas": [
        ("Start Time", "start_time"),
        ("End Time", "end_time"),
        ("Duration", "duration"),
        ("Brand", "brand"),
        ("SKU", "sku"),
        ("Tipe VAS", "vas_type"),
        ("Qty", "qty"),
        ("Operator", "operator"),
    ],
}

_INT_FIELDS = {"po_qty", "qty"}
_DELIMS = re.compile(r"[_\-]")


# --------------------------------------------------------------------------- #
# header mapping                                                              #
# --------------------------------------------------------------------------- #
def _norm(label: str) -> str:
    return _DELIMS.sub(" ", label.strip().lower())


def map_columns(headers: Sequence[str], expected: Sequence[str]) -> List[Optional[int]]:
    """For each expected label, the index of the matching header (or ``None``).

    Each header is used at most once; stronger matches are assigned before
    weaker ones so ``"Tanggal"`` does not steal ``"Tanggal Kedatangan"``.
    """
    found: List[Optional[int]] = [None] * len(expected)
    lowered = [str(h).strip().lower() for h in headers]
    taken: set[int] = set()

    def _pass(match) -> None:
        for i, label in enumerate(expected):
            if found[i] is not None:
                continue
            want = label.strip().lower()
            for j, have in enumerate(lowered):
                if j in taken or not have:
                    continue
                if match(have, want):
                    found[i] = j
                    taken.add(j)
                    break

    _pass(lambda have, want: have == want)
    _pass(lambda have, want: _norm(have) == _norm(want))
    _pass(lambda have, want: want in have or have in want)
    return found


def _columns(kind: str, table: dict) -> list[tuple[str, str]]:
    try:
        return table[kind]
    except KeyError:
        raise ValueError(f"unknown record kind: {kind!r}") from None


# --------------------------------------------------------------------------- #
# import                                                                      #
# --------------------------------------------------------------------------- #
def parse_import(kind: str, df: pd.DataFrame) -> Tuple[List[dict], List[dict]]:
    """Map and validate an uploaded sheet.

    Returns ``(rows, errors)``: payloads ready for ``create_many`` and
    ``{"row", "message"}`` dicts for the rejected lines.
    """
    columns = _columns(kind, IMPORT_COLUMNS)
    create = KINDS[kind][1]
    col_idx = map_columns(list(df.columns), [label for label, _ in columns])
    unmapped = [label for (label, _), idx in zip(columns, col_idx) if idx is None]
    if unmapped:
        logger.info("parse_import[%s]: no column for %s", kind, unmapped)

    rows: List[dict] = []
    errors: List[dict] = []
    for pos, values in enumerate(df.itertuples(index=False, name=None)):
        row_no = pos + 2
        cells = [
            "" if idx is None else str(values[idx] if values[idx] is not None else "").strip()
            for idx in col_idx
        ]
        if not any(cells):
            continue

        data = {}
        for (_, fld), cell in zip(columns, cells):
            if fld in _INT_FIELDS:
                data[fld] = to_int(cell)
            elif fld == "operate_type":
                data[fld] = cell.lower()
            else:
                data[fld] = cell
        try:
            rows.append(create.model_validate(data).model_dump())
        except ValidationError as e:
            msg = ", ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
            errors.append({"row": row_no, "message": msg})

    return rows, errors


# --------------------------------------------------------------------------- #
# export                                                                      #
# --------------------------------------------------------------------------- #
def _arrival_time_display(value: object) -> str:
    dt = parse_timestamp(value)
    if dt is None:
        return str(value or "")
    return format_timestamp(dt)


def export_frame(kind: str, records: Iterable[Mapping],
                 transactions: Iterable[Mapping] = ()) -> pd.DataFrame:
    columns = _columns(kind, EXPORT_COLUMNS)
    records = list(records)
    if kind == "arrivals":
        records = arrival_rows(records, transactions)
        for r in records:
            r["arrival_time"] = _arrival_time_display(r.get("arrival_time"))
    if kind == "vas":
        # older rows have no start time, only a date
        records = [{**r, "start_time": r.get("start_time") or r.get("date") or ""} for r in records]

    data = [
        ["" if r.get(fld) is None else r.get(fld) for _, fld in columns]
        for r in records
    ]
    return pd.DataFrame(data, columns=[label for label, _ in columns])


def export_csv(kind: str, records: Iterable[Mapping],
               transactions: Iterable[Mapping] = ()) -> bytes:
    df = export_frame(kind, records, transactions)
    buf = io.StringIO()
    df.to_csv(buf, index=False, lineterminator="\n")
    return (BOM + buf.getvalue()).encode("utf-8")
