"""
CSV import / export router.

* POST /v1/upload/{kind}  – CSV / Excel upload (multipart/form-data)
* GET  /v1/export/{kind}  – CSV download; ``?ids=a&ids=b`` exports only those

Upload responses follow the usual summary shape::

    {"total_rows": 10, "success_rows": 8, "error_rows": 2,
     "errors": [{"row": 3, "message": "..."}], "error_csv_url": "..."}

Rejected rows are also written to an error CSV under ``UPLOAD_ERROR_DIR``
(served at ``/files``).
"""

import logging
import os
from pathlib import Path
from typing import Annotated, List, Optional
from uuid import uuid4

import pandas as pd
from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import Response

from inbound.models import KINDS
from inbound.routers.deps import get_store
from inbound.routers.records import store_errors
from inbound.services.csv_io import export_csv, parse_import
from inbound.services.store import SqlRecordStore
from inbound.utils.file_parser import read_dataframe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["transfer"])

ERROR_DIR = Path(os.getenv("UPLOAD_ERROR_DIR", "/tmp/upload_errors"))
ERROR_DIR.mkdir(parents=True, exist_ok=True)

EXPORT_FILENAMES = {
    "arrivals": "inbound_arrival.csv",
    "transactions": "inbound_transaction.csv",
    "vas": "vas_data.csv",
}

StoreDep = Annotated[SqlRecordStore, Depends(get_store)]
UploadDep = Annotated[UploadFile, File(...)]


def _check_kind(kind: str) -> None:
    if kind not in KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown record kind: {kind}")


def _save_error_csv(errors: list[dict], base_url: str = "") -> str:
    """
    Save ``{'row': int, 'message': str}`` dicts as CSV and return its URL
    (``{base_url}/files/err_<uuid>.csv``). The app mounts ``/files``.
    """
    if not errors:
        return ""
    fname = f"err_{uuid4().hex}.csv"
    fpath = ERROR_DIR / fname
    pd.DataFrame(errors).to_csv(fpath, index=False, encoding="utf-8-sig")
    logger.info("Saved error CSV: %s (%d errors)", fpath, len(errors))
    return f"{base_url.rstrip('/')}/files/{fname}"


@router.post("/upload/{kind}")
async def upload_records(kind: str, file: UploadDep, store: StoreDep, request: Request):
    _check_kind(kind)
    try:
        df = read_dataframe(file)
        rows, errors = parse_import(kind, df)
    except ValueError as e:
        logger.exception("%s upload failed: invalid file", kind)
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("%s upload failed", kind)
        raise HTTPException(status_code=500, detail=str(e))

    with store_errors(f"{kind} upload"):
        created = store.create_many(kind, rows)

    summary = {
        "total_rows": int(len(df)),
        "success_rows": len(created),
        "error_rows": len(errors),
        "errors": errors,
    }
    if errors:
        summary["error_csv_url"] = _save_error_csv(errors, str(request.base_url))
    logger.info("upload[%s]: total=%s success=%s errors=%s",
                kind, summary["total_rows"], summary["success_rows"], summary["error_rows"])
    return summary


@router.get("/export/{kind}")
def export_records(
    kind: str,
    store: StoreDep,
    ids: Optional[List[str]] = Query(None, description="export only these ids"),
):
    _check_kind(kind)
    with store_errors(f"{kind} export"):
        records = store.list(kind)
        transactions = store.list("transactions") if kind == "arrivals" else []

    filename = EXPORT_FILENAMES[kind]
    if ids:
        wanted = set(ids)
        records = [r for r in records if r.get("id") in wanted]
        filename = f"{kind}_selected.csv"
    if not records:
        raise HTTPException(status_code=404, detail="No records to export")

    return Response(
        content=export_csv(kind, records, transactions),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
