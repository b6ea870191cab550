"""Receipt matching between arrivals and transactions."""
from inbound.services.reconcile import (
    ReceiptIndex,
    arrival_rows,
    calculated_qty,
    pending_class,
    to_int,
)


def _tx(receipt_no, operate_type, qty):
    return {"receipt_no": receipt_no, "operate_type": operate_type, "qty": qty}


def test_receipt_match_is_case_insensitive():
    arrivals = [{"receipt_no": "PO1", "po_qty": 100}]
    transactions = [_tx("po1", "receive", 60), _tx("PO1", "putaway", 40)]

    row = arrival_rows(arrivals, transactions)[0]
    assert row["receive_qty"] == 60
    assert row["putaway_qty"] == 40
    assert row["pending_qty"] == 40


def test_unmatched_and_unknown_types_contribute_nothing():
    transactions = [
        _tx("R1", "receive", 5),
        _tx("R2", "receive", 7),
        _tx("R1", "damaged", 99),
        _tx("R1", "putaway", 3),
    ]
    assert calculated_qty("r1", transactions) == (5, 3)
    assert calculated_qty("R3", transactions) == (0, 0)


def test_empty_receipt_number_never_matches():
    transactions = [_tx("", "receive", 5), _tx(None, "receive", 6)]
    assert calculated_qty("", transactions) == (0, 0)
    assert calculated_qty(None, transactions) == (0, 0)


def test_non_numeric_qty_counts_as_zero():
    transactions = [_tx("R1", "receive", "abc"), _tx("R1", "receive", "4"), _tx("R1", "receive", None)]
    assert calculated_qty("R1", transactions).receive_qty == 4


def test_index_agrees_with_full_scan():
    transactions = [
        _tx("A1", "receive", 3), _tx("a1", "putaway", 2), _tx("B7", "RECEIVE", 10),
        _tx(" b7 ", "putaway", 1), _tx("C", "other", 8), _tx("", "receive", 1),
    ]
    index = ReceiptIndex(transactions)
    for receipt in ("A1", "a1", "B7", "b7", "C", "missing", ""):
        assert index.calculated_qty(receipt) == calculated_qty(receipt, transactions)


def test_over_received_gives_negative_pending():
    arrivals = [{"receipt_no": "R9", "po_qty": 10}]
    row = arrival_rows(arrivals, [_tx("R9", "receive", 12)])[0]
    assert row["pending_qty"] == -2
    assert row["pending_class"] == "zero"


def test_pending_class():
    assert pending_class(5) == "negative"
    assert pending_class(0) == "positive"
    assert pending_class(-1) == "zero"


def test_arrival_rows_keep_order():
    arrivals = [{"receipt_no": r, "po_qty": 1} for r in ("C", "A", "B")]
    assert [r["receipt_no"] for r in arrival_rows(arrivals, [])] == ["C", "A", "B"]


def test_to_int():
    assert to_int("12") == 12
    assert to_int("12.7") == 12
    assert to_int(" 3 ") == 3
    assert to_int("x") == 0
    assert to_int(None) == 0
    assert to_int(True) == 0
