# backend/tests/test_transfer.py
import io

import pandas as pd
from fastapi.testclient import TestClient

from inbound.main import app

client = TestClient(app)

ARRIVAL_CSV = (
    "\ufeffTanggal Kedatangan,Waktu Kedatangan,Brand,Receipt No,PO No,PO Qty,Operator,Note\n"
    "2026-02-13,2/13/2026 08:00:00,Acme,R1,P1,100,Ann,\n"
    "2026-02-13,2/13/2026 09:00:00,Zeta,,P2,50,Bob,missing receipt\n"
    "2026-02-13,,,R3,,,,\n"
)


def test_upload_arrivals_csv():
    resp = client.post(
        "/v1/upload/arrivals",
        files={"file": ("arrivals.csv", ARRIVAL_CSV.encode("utf-8"), "text/csv")},
    )
    assert resp.status_code == 200
    j = resp.json()
    assert j["total_rows"] == 3
    assert j["success_rows"] == 1
    assert j["error_rows"] == 2
    assert [e["row"] for e in j["errors"]] == [3, 4]
    assert j["error_csv_url"].endswith(".csv")

    rows = client.get("/v1/arrivals").json()
    assert [(r["receipt_no"], r["po_qty"]) for r in rows] == [("R1", 100)]


def test_upload_empty_file_rejected():
    resp = client.post("/v1/upload/vas", files={"file": ("vas.csv", b"", "text/csv")})
    assert resp.status_code == 400
    assert client.get("/v1/vas").json() == []


def test_upload_unknown_kind():
    resp = client.post("/v1/upload/sku", files={"file": ("x.csv", b"a,b\n1,2\n", "text/csv")})
    assert resp.status_code == 404


def test_export_and_selected_export():
    created = client.post("/v1/transactions/bulk", json=[
        {"receipt_no": "R1", "sku": "S1", "operate_type": "receive", "qty": 5},
        {"receipt_no": "R2", "sku": "S2", "operate_type": "putaway", "qty": 7},
    ]).json()

    resp = client.get("/v1/export/transactions")
    assert resp.status_code == 200
    assert resp.content.startswith("\ufeff".encode("utf-8"))
    assert "inbound_transaction.csv" in resp.headers["content-disposition"]
    df = pd.read_csv(io.BytesIO(resp.content), encoding="utf-8-sig", dtype=str)
    assert list(df.columns) == ["Tanggal Transaksi", "Time Transaction", "Receipt No", "SKU",
                                "Operate Type", "Qty", "Operator"]
    assert len(df) == 2

    resp = client.get("/v1/export/transactions", params={"ids": [created[1]["id"]]})
    df = pd.read_csv(io.BytesIO(resp.content), encoding="utf-8-sig", dtype=str)
    assert df["SKU"].tolist() == ["S2"]


def test_export_nothing():
    assert client.get("/v1/export/vas").status_code == 404
    assert client.get("/v1/export/vas", params={"ids": ["ghost"]}).status_code == 404
