from datetime import datetime

from inbound.services.timecalc import (
    avg_lead_time_seconds,
    avg_receive_to_putaway_seconds,
    display_elapsed,
    format_elapsed,
    format_hms,
    format_timestamp,
    parse_hms,
    parse_timestamp,
)


def test_format_timestamp_unpadded_month_day():
    assert format_timestamp(datetime(2026, 2, 3, 7, 5, 9)) == "2/3/2026 07:05:09"


def test_timestamp_round_trip():
    for dt in (
        datetime(2026, 2, 13, 8, 1, 49),
        datetime(1999, 12, 31, 23, 59, 59),
        datetime(2030, 1, 1, 0, 0, 0),
    ):
        assert parse_timestamp(format_timestamp(dt)) == dt


def test_parse_timestamp_accepts_single_digit_hour():
    assert parse_timestamp("2/13/2026 8:01:49") == datetime(2026, 2, 13, 8, 1, 49)


def test_parse_timestamp_falls_back_to_iso():
    assert parse_timestamp("2026-02-13 08:01:49") == datetime(2026, 2, 13, 8, 1, 49)


def test_parse_timestamp_invalid():
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp("not a time") is None
    assert parse_timestamp("13/45/2026 10:00:00") is None


def test_format_elapsed():
    assert format_elapsed(0) == "0m"
    assert format_elapsed(59) == "0m"
    assert format_elapsed(5 * 60) == "5m"
    assert format_elapsed(3600) == "1h 0m"
    assert format_elapsed(86400) == "1d 0h 0m"
    assert format_elapsed(86400 + 2 * 3600 + 3 * 60) == "1d 2h 3m"


def test_hms():
    assert format_hms(0) == "00:00:00"
    assert format_hms(3725) == "01:02:05"
    assert parse_hms("01:02:05") == 3725
    assert parse_hms("junk") == 0


def _tx(receipt_no, operate_type, time_transaction):
    return {"receipt_no": receipt_no, "operate_type": operate_type,
            "time_transaction": time_transaction, "qty": 1}


def test_receive_to_putaway_mean():
    transactions = [
        _tx("R1", "receive", "2/13/2026 08:00:00"),
        _tx("R1", "receive", "2/13/2026 09:00:00"),
        _tx("r1", "putaway", "2/13/2026 10:00:00"),   # 2h from earliest receive
        _tx("R2", "receive", "2/13/2026 08:00:00"),
        _tx("R2", "putaway", "2/13/2026 09:00:01"),   # 1h 1s
        _tx("R3", "receive", "2/13/2026 08:00:00"),   # no putaway
        _tx("R4", "putaway", "2/13/2026 07:00:00"),
        _tx("R4", "receive", "2/13/2026 08:00:00"),   # negative, skipped
        _tx("R5", "receive", "garbage"),
        _tx("R5", "putaway", "2/13/2026 08:00:00"),
    ]
    # mean of 7200 and 3601 floored
    assert avg_receive_to_putaway_seconds(transactions) == 5400
    assert display_elapsed(avg_receive_to_putaway_seconds(transactions)) == "1h 30m"


def test_means_are_no_data_when_nothing_qualifies():
    assert avg_receive_to_putaway_seconds([]) is None
    assert avg_lead_time_seconds([], []) is None
    assert display_elapsed(None) == "-"


def test_lead_time_uses_earliest_arrival_per_po():
    arrivals = [
        {"po_no": "PO-1", "receipt_no": "R1", "arrival_time": "2/13/2026 08:00:00"},
        {"po_no": "po-1", "receipt_no": "R2", "arrival_time": "2/13/2026 06:00:00"},
        {"po_no": "PO-2", "receipt_no": "R3", "arrival_time": "2/13/2026 06:00:00"},
    ]
    transactions = [
        _tx("R1", "putaway", "2/13/2026 10:00:00"),
        _tx("R2", "putaway", "2/13/2026 09:00:00"),
        _tx("R3", "receive", "2/13/2026 07:00:00"),   # no putaway → skipped
    ]
    # PO-1: 10:00 - 06:00
    assert avg_lead_time_seconds(arrivals, transactions) == 4 * 3600
