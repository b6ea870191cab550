"""
Dashboard router.

* GET  /v1/dashboard               – every statistic, recomputed on each call
* GET  /v1/dashboard/arrivals      – arrivals with receive / putaway / pending qty
* GET  /v1/dashboard/pending       – arrivals still waiting for goods
* POST /v1/dashboard/jobs          – same report computed by the Celery worker
* GET  /v1/dashboard/jobs/{id}     – job state (+ result once finished)
"""

import logging
from typing import Annotated, Optional

from celery import states
from celery.result import AsyncResult
from fastapi import APIRouter, Depends, HTTPException, Query

from inbound.core.celery_app import celery_app
from inbound.routers.deps import get_store
from inbound.routers.records import store_errors
from inbound.services import metrics
from inbound.services.analysis_tasks import dashboard_report
from inbound.services.reconcile import arrival_rows
from inbound.services.store import SqlRecordStore, search_records

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/dashboard", tags=["dashboard"])

StoreDep = Annotated[SqlRecordStore, Depends(get_store)]


@router.get("")
def dashboard(store: StoreDep):
    with store_errors("dashboard"):
        return metrics.build_dashboard(
            store.list("arrivals"), store.list("transactions"), store.list("vas")
        )


@router.get("/arrivals")
def dashboard_arrivals(store: StoreDep, q: Optional[str] = Query(None)):
    with store_errors("dashboard arrivals"):
        arrivals = search_records("arrivals", store.list("arrivals"), q)
        return arrival_rows(arrivals, store.list("transactions"))


@router.get("/pending")
def dashboard_pending(store: StoreDep):
    with store_errors("dashboard pending"):
        return metrics.pending_list(store.list("arrivals"), store.list("transactions"))


# ---- background job ---------------------------------------------------------
@router.post("/jobs", status_code=202)
def dashboard_job_start():
    try:
        res = dashboard_report.delay()
    except Exception as e:
        logger.exception("dashboard job enqueue failed")
        raise HTTPException(status_code=503, detail=f"Task queue unavailable: {e}")
    return {"task_id": res.id, "status": "queued"}


@router.get("/jobs/{task_id}")
def dashboard_job_status(task_id: str):
    res = AsyncResult(task_id, app=celery_app)
    state = res.state
    if state == states.SUCCESS:
        return {"task_id": task_id, "status": "completed", "result": res.result}
    if state == states.FAILURE:
        return {"task_id": task_id, "status": "failed", "error": str(res.result)}
    if state == states.STARTED:
        return {"task_id": task_id, "status": "running"}
    if state == states.PENDING:
        return {"task_id": task_id, "status": "pending"}
    return {"task_id": task_id, "status": state.lower()}
