"""Dashboard aggregation over plain dict records."""
from inbound.services.metrics import (
    arrival_totals,
    build_dashboard,
    completion_summary,
    rate_pct,
    round_half_up,
    vas_summary,
)


ARRIVALS = [
    {"receipt_no": "R1", "po_no": "PO1", "po_qty": 100, "brand": "Acme"},
    {"receipt_no": "R2", "po_no": "PO2", "po_qty": 50, "brand": "acme"},
    {"receipt_no": "R3", "po_no": "PO3", "po_qty": 10, "brand": "Zeta"},
    {"receipt_no": "R4", "po_no": "PO4", "po_qty": "n/a", "brand": ""},
]
TRANSACTIONS = [
    {"receipt_no": "r1", "operate_type": "receive", "qty": 60},
    {"receipt_no": "R1", "operate_type": "putaway", "qty": 40},
    {"receipt_no": "R2", "operate_type": "receive", "qty": 50},
    {"receipt_no": "R2", "operate_type": "putaway", "qty": 50},
    {"receipt_no": "R3", "operate_type": "receive", "qty": 12},
    {"receipt_no": "ZZ", "operate_type": "receive", "qty": 999},
]


def test_arrival_totals():
    t = arrival_totals(ARRIVALS, TRANSACTIONS)
    assert t.po_received == 4
    assert t.brands_received == 2
    assert t.po_pending == 1                 # only R1; R3 is over-received
    assert t.total_qty_pending == 40
    assert t.total_po_qty == 160
    assert t.total_receive_qty == 122
    assert t.total_putaway_qty == 90


def test_dashboard_rates_and_pending():
    report = build_dashboard(ARRIVALS, TRANSACTIONS, [])
    assert report["completed_pct"] == 76      # 122 / 160 = 76.25 %
    assert report["pending_pct"] == 24
    assert report["receive_rate"] == "76.3"
    assert report["putaway_rate"] == "73.8"   # 90 / 122 = 73.77 %
    assert report["pending_rate"] == "25.0"
    assert [p["receipt_no"] for p in report["pending"]] == ["R1"]
    assert report["pending"][0]["pending_qty"] == 40
    assert report["avg_receive_to_putaway"] == "-"
    assert report["avg_lead_time"] == "-"
    assert report["bars"]["receive"] == 100


def test_no_po_qty_gives_zero_everywhere():
    report = build_dashboard([], [], [])
    assert report["completed_pct"] == 0
    assert report["pending_pct"] == 0
    assert report["receive_rate"] == "0.0"
    assert report["putaway_rate"] == "0.0"
    assert report["pending_rate"] == "0.0"
    assert report["pending"] == []
    assert report["vas"]["avg_qty_per_day"] == "-"


def test_completion_is_clamped_when_over_received():
    totals = arrival_totals(
        [{"receipt_no": "R1", "po_qty": 10}],
        [{"receipt_no": "R1", "operate_type": "receive", "qty": 15}],
    )
    summary = completion_summary(totals)
    assert summary["completed_pct_raw"] == 150
    assert summary["completed_pct"] == 100
    assert summary["pending_pct"] == 0


def test_rounding_is_half_up():
    assert rate_pct(1, 8) == "12.5"
    assert rate_pct(1, 16) == "6.3"           # 6.25
    assert int(round_half_up(2.5)) == 3
    assert rate_pct(5, 0) == "0.0"


def test_vas_summary_groups_and_sorts():
    vas = [
        {"vas_type": "Labeling", "qty": 5, "sku": "S1", "brand": "B1", "operator": "Ann", "date": "2026-02-13"},
        {"vas_type": "Repack", "qty": 20, "sku": "S2", "brand": "B1", "operator": "ann", "date": "2026-02-13"},
        {"vas_type": "Labeling", "qty": 10, "sku": "s1", "brand": "b2", "operator": "Bob", "date": "2026-02-14"},
        {"vas_type": "", "qty": "x", "sku": "S3", "brand": None, "operator": "", "date": ""},
    ]
    summary = vas_summary(vas)
    types = summary["types"]
    assert [t["vas_type"] for t in types] == ["Repack", "Labeling", "Unknown"]
    labeling = types[1]
    assert labeling["qty"] == 15
    assert labeling["sku_count"] == 1
    assert labeling["brand_count"] == 2
    assert summary["total_qty"] == 35
    # 2 operators, 2 days
    assert summary["avg_qty_per_operator_day"] == 9     # 8.75
    assert summary["avg_qty_per_day"] == 18             # 17.5


def test_vas_summary_empty():
    summary = vas_summary([])
    assert summary["types"] == []
    assert summary["avg_qty_per_operator_day"] == "-"
