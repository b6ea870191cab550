"""
VAS task router (work in progress → committed ``vas`` records).

Tasks are held by the process-wide :class:`VasTaskBoard` on ``app.state``;
only ``commit`` touches the record store.
"""

import logging
from contextlib import contextmanager
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from inbound.routers.deps import get_store, get_vas_board
from inbound.routers.records import store_errors
from inbound.services.store import SqlRecordStore
from inbound.services.vas_tasks import (
    VasTaskBoard,
    VasTaskNotFound,
    VasTaskStateError,
    VasTaskValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/vas-tasks", tags=["vas-tasks"])

BoardDep = Annotated[VasTaskBoard, Depends(get_vas_board)]
StoreDep = Annotated[SqlRecordStore, Depends(get_store)]


# ---- request bodies ---------------------------------------------------------
class StartRequest(BaseModel):
    operator: str = ""
    vas_type: str = ""


class MetaUpdate(BaseModel):
    operator: Optional[str] = None
    vas_type: Optional[str] = None


class LineIn(BaseModel):
    brand: str = ""
    sku: str = ""


class LinePatch(BaseModel):
    brand: Optional[str] = None
    sku: Optional[str] = None


class CommitRequest(BaseModel):
    quantities: List[int]


@contextmanager
def task_errors():
    try:
        yield
    except VasTaskNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except VasTaskStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except VasTaskValidationError as e:
        raise HTTPException(status_code=422, detail=e.problems)


# ---- endpoints --------------------------------------------------------------
@router.get("")
def list_tasks(board: BoardDep):
    now = board.now()
    return [t.to_dict(now) for t in board.list()]


@router.post("", status_code=201)
def start_task(board: BoardDep, payload: Optional[StartRequest] = None):
    payload = payload or StartRequest()
    task = board.start(operator=payload.operator, vas_type=payload.vas_type)
    return task.to_dict(board.now())


@router.get("/{task_id}")
def get_task(task_id: str, board: BoardDep):
    with task_errors():
        return board.get(task_id).to_dict(board.now())


@router.patch("/{task_id}")
def update_task(task_id: str, payload: MetaUpdate, board: BoardDep):
    with task_errors():
        task = board.set_meta(task_id, operator=payload.operator, vas_type=payload.vas_type)
        return task.to_dict(board.now())


@router.post("/{task_id}/lines", status_code=201)
def add_line(task_id: str, payload: LineIn, board: BoardDep):
    with task_errors():
        return board.add_line(task_id, brand=payload.brand, sku=payload.sku).to_dict(board.now())


@router.patch("/{task_id}/lines/{index}")
def update_line(task_id: str, index: int, payload: LinePatch, board: BoardDep):
    with task_errors():
        task = board.update_line(task_id, index, brand=payload.brand, sku=payload.sku)
        return task.to_dict(board.now())


@router.delete("/{task_id}/lines/{index}")
def remove_line(task_id: str, index: int, board: BoardDep):
    with task_errors():
        return board.remove_line(task_id, index).to_dict(board.now())


@router.post("/{task_id}/finish")
def finish_task(task_id: str, board: BoardDep):
    with task_errors():
        return board.finish(task_id).to_dict(board.now())


@router.post("/{task_id}/commit", status_code=201)
def commit_task(task_id: str, payload: CommitRequest, board: BoardDep, store: StoreDep):
    with store_errors("vas task commit"), task_errors():
        created = board.commit(task_id, payload.quantities, store)
    return {"created": created}


@router.post("/{task_id}/cancel", status_code=204)
def cancel_task(task_id: str, board: BoardDep):
    with task_errors():
        board.cancel(task_id)
    return Response(status_code=204)


@router.post("/{task_id}/discard", status_code=204)
def discard_task(task_id: str, board: BoardDep):
    with task_errors():
        board.discard(task_id)
    return Response(status_code=204)
