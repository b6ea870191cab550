"""
metrics.py

Dashboard statistics for the inbound log book.

Everything is recomputed from the three record lists on each call; there are
no stored aggregates. Inputs may hold malformed values (blank quantities,
broken timestamps, missing brands); every function here degrades to 0 / ``-``
instead of raising.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from inbound.services.reconcile import ReceiptIndex, field_of, to_int
from inbound.services.timecalc import (
    NO_DATA,
    avg_lead_time_seconds,
    avg_receive_to_putaway_seconds,
    display_elapsed,
)


# --------------------------------------------------------------------------- #
# rounding helpers                                                            #
# --------------------------------------------------------------------------- #
def round_half_up(value: float, places: int = 0) -> Decimal:
    exp = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(exp, rounding=ROUND_HALF_UP)


def rate_pct(numerator: int, denominator: int) -> str:
    """``numerator / denominator`` as a percentage with one decimal; ``"0.0"`` on /0."""
    if not denominator:
        return "0.0"
    return str(round_half_up(numerator / denominator * 100, 1))


def completion_pct(total_po_qty: int, total_receive_qty: int) -> int:
    """``round(100 * received / ordered)``; 0 when nothing was ordered. Not clamped."""
    if total_po_qty == 0:
        return 0
    return int(round_half_up(total_receive_qty / total_po_qty * 100))


# --------------------------------------------------------------------------- #
# arrivals × transactions                                                     #
# --------------------------------------------------------------------------- #
@dataclass(frozen=True)
class ArrivalTotals:
    po_received: int
    brands_received: int
    po_pending: int
    total_qty_pending: int
    total_po_qty: int
    total_receive_qty: int
    total_putaway_qty: int


def arrival_totals(arrivals: Iterable[object], transactions: Iterable[object]) -> ArrivalTotals:
    index = ReceiptIndex(transactions)
    po_received = po_pending = qty_pending = 0
    total_po = total_recv = total_put = 0
    brands: set[str] = set()

    for a in arrivals:
        po_qty = to_int(field_of(a, "po_qty"))
        qty = index.calculated_qty(field_of(a, "receipt_no"))
        pending = po_qty - qty.receive_qty

        total_po += po_qty
        total_recv += qty.receive_qty
        total_put += qty.putaway_qty

        brand = str(field_of(a, "brand") or "")
        if brand:
            brands.add(brand.lower())

        po_received += 1
        if pending > 0:
            po_pending += 1
            qty_pending += pending

    return ArrivalTotals(
        po_received=po_received,
        brands_received=len(brands),
        po_pending=po_pending,
        total_qty_pending=qty_pending,
        total_po_qty=total_po,
        total_receive_qty=total_recv,
        total_putaway_qty=total_put,
    )


def pending_list(arrivals: Iterable[object], transactions: Iterable[object]) -> List[Dict[str, Any]]:
    """Arrivals with ``pending_qty > 0`` in their original order, enriched."""
    index = ReceiptIndex(transactions)
    out: List[Dict[str, Any]] = []
    for a in arrivals:
        qty = index.calculated_qty(field_of(a, "receipt_no"))
        pending = to_int(field_of(a, "po_qty")) - qty.receive_qty
        if pending <= 0:
            continue
        row = dict(a) if isinstance(a, Mapping) else a.model_dump(mode="json")
        row["pending_qty"] = pending
        out.append(row)
    return out


def completion_summary(totals: ArrivalTotals) -> Dict[str, Any]:
    """Donut / rate figures.

    * ``completed_pct_raw`` – unclamped ``round(100 * received / ordered)``
    * ``completed_pct`` – the same clamped into 0..100 for display
    * ``pending_pct`` – ``100 - completed_pct``; 0 when nothing was ordered
    """
    raw = completion_pct(totals.total_po_qty, totals.total_receive_qty)
    shown = min(max(raw, 0), 100)
    pending = 100 - shown if totals.total_po_qty > 0 else 0
    return {
        "completed_pct_raw": raw,
        "completed_pct": shown,
        "pending_pct": pending,
        "receive_rate": rate_pct(totals.total_receive_qty, totals.total_po_qty),
        "putaway_rate": rate_pct(totals.total_putaway_qty, totals.total_receive_qty),
        "pending_rate": rate_pct(totals.total_qty_pending, totals.total_po_qty),
    }


def bar_widths(totals: ArrivalTotals) -> Dict[str, float]:
    """Bar lengths (percent of the largest of receive/putaway/pending, capped at 100)."""
    scale = max(totals.total_receive_qty, totals.total_putaway_qty, totals.total_qty_pending, 1)
    return {
        "receive": min(totals.total_receive_qty / scale * 100, 100),
        "putaway": min(totals.total_putaway_qty / scale * 100, 100),
        "pending": min(totals.total_qty_pending / scale * 100, 100),
    }


# --------------------------------------------------------------------------- #
# VAS                                                                         #
# --------------------------------------------------------------------------- #
def vas_summary(vas_entries: Sequence[object]) -> Dict[str, Any]:
    """Per VAS type qty / distinct SKU / distinct brand, plus daily averages.

    Types are sorted by summed quantity, largest first (ties keep first-seen
    order). Averages are ``-`` when the total quantity is 0.
    """
    groups: Dict[str, Dict[str, Any]] = {}
    total_qty = 0
    operators: set[str] = set()
    days: set[str] = set()

    for v in vas_entries:
        qty = to_int(field_of(v, "qty"))
        total_qty += qty

        operator = str(field_of(v, "operator") or "").lower()
        if operator:
            operators.add(operator)
        day = field_of(v, "date")
        if day:
            days.add(str(day))

        vas_type = field_of(v, "vas_type") or "Unknown"
        g = groups.setdefault(str(vas_type), {"qty": 0, "skus": set(), "brands": set()})
        g["qty"] += qty
        sku = field_of(v, "sku")
        if sku:
            g["skus"].add(str(sku).lower())
        brand = field_of(v, "brand")
        if brand:
            g["brands"].add(str(brand).lower())

    num_ops = len(operators) or 1
    num_days = len(days) or 1
    if total_qty > 0:
        per_op_day: Any = int(round_half_up(total_qty / num_ops / num_days))
        per_day: Any = int(round_half_up(total_qty / num_days))
    else:
        per_op_day = per_day = NO_DATA

    types = sorted(
        (
            {
                "vas_type": name,
                "qty": g["qty"],
                "sku_count": len(g["skus"]),
                "brand_count": len(g["brands"]),
            }
            for name, g in groups.items()
        ),
        key=lambda row: -row["qty"],
    )
    return {
        "total_qty": total_qty,
        "operators": len(operators),
        "days": len(days),
        "avg_qty_per_operator_day": per_op_day,
        "avg_qty_per_day": per_day,
        "types": types,
    }


# --------------------------------------------------------------------------- #
# full dashboard                                                              #
# --------------------------------------------------------------------------- #
def build_dashboard(
    arrivals: Sequence[object],
    transactions: Sequence[object],
    vas_entries: Sequence[object],
) -> Dict[str, Any]:
    """Recompute every dashboard figure from the three logs."""
    totals = arrival_totals(arrivals, transactions)
    report: Dict[str, Any] = asdict(totals)
    report.update(completion_summary(totals))
    report["bars"] = bar_widths(totals)
    report["avg_receive_to_putaway"] = display_elapsed(avg_receive_to_putaway_seconds(transactions))
    report["avg_lead_time"] = display_elapsed(avg_lead_time_seconds(arrivals, transactions))
    report["pending"] = pending_list(arrivals, transactions)
    report["vas"] = vas_summary(vas_entries)
    return report
