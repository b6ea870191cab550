"""
CRUD router for the three record logs.

One router per kind, all built by :func:`build_router`:

* GET    /v1/{kind}               list (newest first; ``q`` / ``limit`` / ``offset``)
* POST   /v1/{kind}               create one
* POST   /v1/{kind}/bulk          create many (all or nothing)
* POST   /v1/{kind}/bulk-delete   ``{"ids": [...]}`` → ``{"deleted": n}``
* GET    /v1/{kind}/{id}
* PUT    /v1/{kind}/{id}          partial update (same as PATCH)
* PATCH  /v1/{kind}/{id}
* DELETE /v1/{kind}/{id}          204 even when the id is unknown

``{kind}`` is ``arrivals``, ``transactions`` or ``vas``.
"""

import logging
from contextlib import contextmanager
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel

from inbound.models import KINDS
from inbound.routers.deps import get_store
from inbound.services.store import (
    RecordNotFound,
    RecordValidationError,
    SqlRecordStore,
    StoreUnavailable,
    search_records,
)

logger = logging.getLogger(__name__)

StoreDep = Annotated[SqlRecordStore, Depends(get_store)]


class BulkDeleteRequest(BaseModel):
    ids: List[str] = []


@contextmanager
def store_errors(what: str):
    """Map store exceptions onto HTTP status codes."""
    try:
        yield
    except HTTPException:
        raise
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RecordValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors)
    except StoreUnavailable as e:
        logger.warning("%s: store unavailable: %s", what, e)
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("%s failed", what)
        raise HTTPException(status_code=500, detail=str(e))


def build_router(kind: str) -> APIRouter:
    _table, create_schema, _read, update_schema = KINDS[kind]
    router = APIRouter(prefix=f"/v1/{kind}", tags=[kind])

    @router.get("")
    def list_records(
        store: StoreDep,
        response: Response,
        q: Optional[str] = Query(None, description="case-insensitive substring search"),
        limit: Optional[int] = Query(None, ge=1, le=1000),
        offset: int = Query(0, ge=0),
    ):
        with store_errors(f"list {kind}"):
            rows = search_records(kind, store.list(kind), q)
        response.headers["X-Total-Count"] = str(len(rows))
        end = None if limit is None else offset + limit
        return rows[offset:end]

    @router.post("", status_code=201)
    def create_record(payload: create_schema, store: StoreDep):
        with store_errors(f"create {kind}"):
            return store.create(kind, payload.model_dump())

    @router.post("/bulk", status_code=201)
    def create_records(payload: List[create_schema], store: StoreDep):
        with store_errors(f"bulk create {kind}"):
            return store.create_many(kind, [p.model_dump() for p in payload])

    @router.post("/bulk-delete")
    def bulk_delete(payload: BulkDeleteRequest, store: StoreDep):
        with store_errors(f"bulk delete {kind}"):
            return {"deleted": store.bulk_delete(kind, payload.ids)}

    @router.get("/{record_id}")
    def get_record(record_id: str, store: StoreDep):
        with store_errors(f"get {kind}"):
            return store.get(kind, record_id)

    @router.api_route("/{record_id}", methods=["PUT", "PATCH"])
    def update_record(record_id: str, payload: update_schema, store: StoreDep):
        with store_errors(f"update {kind}"):
            return store.update(kind, record_id, payload.model_dump(exclude_unset=True))

    @router.delete("/{record_id}", status_code=204)
    def delete_record(record_id: str, store: StoreDep):
        with store_errors(f"delete {kind}"):
            store.delete(kind, record_id)
        return Response(status_code=204)

    return router


routers = [build_router(kind) for kind in KINDS]
