"""
reconcile.py

Joins transactions to arrivals by receipt number.

* receipt numbers compare **trimmed + case-insensitive** (no other folding)
* only ``receive`` / ``putaway`` contribute; other operate types are ignored
* non-numeric quantities count as 0
* nothing is stored: every figure is recomputed from the current records

Records may be mappings (API / cache rows) or model instances.
"""
from __future__ import annotations

from typing import Iterable, Mapping, NamedTuple


class ReceiptQty(NamedTuple):
    receive_qty: int
    putaway_qty: int


def field_of(record: object, name: str):
    """Read ``name`` from a dict-like row or an object; ``None`` if absent."""
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def to_int(value: object) -> int:
    """Lenient integer coercion (``"12"`` → 12, ``"12.7"`` → 12, junk → 0)."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return 0


def receipt_key(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def operate_type_of(record: object) -> str:
    return str(field_of(record, "operate_type") or "").strip().lower()


def calculated_qty(receipt_no: object, transactions: Iterable[object]) -> ReceiptQty:
    """Full scan of ``transactions`` for one receipt number.

    An empty / missing receipt number never matches.
    """
    key = receipt_key(receipt_no)
    receive = putaway = 0
    if not key:
        return ReceiptQty(0, 0)
    for t in transactions:
        if receipt_key(field_of(t, "receipt_no")) != key:
            continue
        op = operate_type_of(t)
        if op == "receive":
            receive += to_int(field_of(t, "qty"))
        elif op == "putaway":
            putaway += to_int(field_of(t, "qty"))
    return ReceiptQty(receive, putaway)


class ReceiptIndex:
    """receipt key → summed quantities, built in one pass.

    Same answers as :func:`calculated_qty` for every receipt number; used by
    the dashboard so a refresh costs O(arrivals + transactions).
    """

    def __init__(self, transactions: Iterable[object]):
        self._totals: dict[str, list[int]] = {}
        for t in transactions:
            key = receipt_key(field_of(t, "receipt_no"))
            if not key:
                continue
            op = operate_type_of(t)
            if op == "receive":
                slot = 0
            elif op == "putaway":
                slot = 1
            else:
                continue
            self._totals.setdefault(key, [0, 0])[slot] += to_int(field_of(t, "qty"))

    def calculated_qty(self, receipt_no: object) -> ReceiptQty:
        totals = self._totals.get(receipt_key(receipt_no))
        if not totals:
            return ReceiptQty(0, 0)
        return ReceiptQty(totals[0], totals[1])


def pending_class(pending_qty: int) -> str:
    """Display class of a pending quantity (over-received rows are ``zero``)."""
    if pending_qty > 0:
        return "negative"
    if pending_qty == 0:
        return "positive"
    return "zero"


def arrival_rows(arrivals: Iterable[object], transactions: Iterable[object]) -> list[dict]:
    """Arrivals (as dicts, original order) enriched with computed quantities."""
    index = ReceiptIndex(transactions)
    rows: list[dict] = []
    for a in arrivals:
        row = dict(a) if isinstance(a, Mapping) else a.model_dump(mode="json")
        qty = index.calculated_qty(row.get("receipt_no"))
        pending = to_int(row.get("po_qty")) - qty.receive_qty
        row.update(
            receive_qty=qty.receive_qty,
            putaway_qty=qty.putaway_qty,
            pending_qty=pending,
            pending_class=pending_class(pending),
        )
        rows.append(row)
    return rows
