# backend/tests/test_analysis_tasks.py
import pytest

from inbound.services import analysis_tasks


class _Store:
    backend = "cache"

    def __init__(self, rows):
        self.rows = rows
        self.closed = False

    def list(self, kind):
        return self.rows.get(kind, [])

    def close(self):
        self.closed = True


def test_dashboard_report_closes_store(monkeypatch):
    store = _Store({
        "arrivals": [{"receipt_no": "R1", "po_no": "P1", "po_qty": 10}],
        "transactions": [{"receipt_no": "r1", "operate_type": "receive", "qty": 4}],
    })
    monkeypatch.setattr(analysis_tasks, "open_store", lambda: store)

    result = analysis_tasks.dashboard_report()

    assert store.closed is True
    assert result["source"] == "cache"
    assert result["report"]["total_receive_qty"] == 4


def test_dashboard_report_closes_store_on_failure(monkeypatch):
    class _Broken(_Store):
        def list(self, kind):
            raise RuntimeError("disk gone")

    store = _Broken({})
    monkeypatch.setattr(analysis_tasks, "open_store", lambda: store)

    with pytest.raises(RuntimeError):
        analysis_tasks.dashboard_report()
    assert store.closed is True
