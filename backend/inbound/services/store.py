"""
store.py

Record persistence for the three inbound logs (``arrivals`` / ``transactions``
/ ``vas``).

Backends
--------
* :class:`SqlRecordStore`      – SQLModel tables on any SQLAlchemy engine
* :class:`RemoteRecordStore`   – the ``/v1/{kind}`` HTTP surface of another
  instance, through httpx
* :class:`FallbackRecordStore` – remote first, local SQLite cache when the
  remote cannot be reached (never both for one read)

Records go in and come out as JSON-ready ``dict`` rows so that every backend
returns the same shape.
"""
from __future__ import annotations

import logging
import os
import threading
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import httpx
from pydantic import ValidationError
from sqlalchemy import delete as sa_delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, col, select

from inbound.core.database import engine as default_engine, make_engine
from inbound.models import KINDS, normalize_operate_type
from inbound.models._common import utcnow

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

PROBE_TIMEOUT = float(os.getenv("INBOUND_PROBE_TIMEOUT", "2"))

# per-kind columns scanned by the free-text search box
SEARCH_FIELDS: Dict[str, tuple[str, ...]] = {
    "arrivals": ("receipt_no", "brand", "po_no", "date"),
    "transactions": ("receipt_no", "sku", "operate_type", "operator"),
    "vas": ("sku", "brand", "vas_type", "operator"),
}


# --------------------------------------------------------------------------- #
# errors                                                                      #
# --------------------------------------------------------------------------- #
class RecordNotFound(LookupError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} record not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class RecordValidationError(ValueError):
    """Payload rejected before anything was written.

    ``errors`` is a list of ``{"row": int, "message": str}`` (row is 0 for a
    single-record payload).
    """

    def __init__(self, errors: List[dict]):
        self.errors = errors
        super().__init__("; ".join(f"row {e['row']}: {e['message']}" for e in errors))


class StoreUnavailable(RuntimeError):
    """The remote store did not answer usably (network error, timeout, 5xx, unexpected 4xx)."""


def _messages(exc: ValidationError) -> str:
    return ", ".join(
        f"{'.'.join(str(p) for p in e['loc']) or 'body'}: {e['msg']}" for e in exc.errors()
    )


def _schemas(kind: str):
    try:
        return KINDS[kind]
    except KeyError:
        raise ValueError(f"unknown record kind: {kind!r}") from None


class RecordStore(Protocol):
    def list(self, kind: str) -> List[Record]: ...

    def get(self, kind: str, record_id: str) -> Record: ...

    def create(self, kind: str, data: dict) -> Record: ...

    def create_many(self, kind: str, rows: Sequence[dict]) -> List[Record]: ...

    def update(self, kind: str, record_id: str, data: dict) -> Record: ...

    def delete(self, kind: str, record_id: str) -> bool: ...

    def bulk_delete(self, kind: str, ids: Sequence[str]) -> int: ...

    def close(self) -> None: ...


# --------------------------------------------------------------------------- #
# SQL backend                                                                 #
# --------------------------------------------------------------------------- #
_WRITE_LOCKS = {kind: threading.Lock() for kind in KINDS}


class SqlRecordStore:
    """SQLModel-backed store. One short session per call."""

    backend = "sql"

    def __init__(self, engine=None):
        self.engine = engine if engine is not None else default_engine

    # ---- reads ----
    def list(self, kind: str) -> List[Record]:
        table = _schemas(kind)[0]
        with Session(self.engine) as ses:
            stmt = select(table).order_by(col(table.created_at).desc(), col(table.id).desc())
            return [row.model_dump(mode="json") for row in ses.exec(stmt).all()]

    def get(self, kind: str, record_id: str) -> Record:
        table = _schemas(kind)[0]
        with Session(self.engine) as ses:
            row = ses.get(table, record_id)
            if row is None:
                raise RecordNotFound(kind, record_id)
            return row.model_dump(mode="json")

    # ---- writes ----
    def _build(self, kind: str, data: dict, row_no: int):
        table, create, _read, _update = _schemas(kind)
        try:
            payload = create.model_validate(data)
        except ValidationError as e:
            raise RecordValidationError([{"row": row_no, "message": _messages(e)}]) from e
        return table(**payload.model_dump())

    def create(self, kind: str, data: dict) -> Record:
        return self.create_many(kind, [data])[0]

    def create_many(self, kind: str, rows: Sequence[dict]) -> List[Record]:
        """Validate every row first, then insert all of them in one transaction."""
        objs, errors = [], []
        for i, data in enumerate(rows):
            try:
                objs.append(self._build(kind, data, i))
            except RecordValidationError as e:
                errors.extend(e.errors)
        if errors:
            raise RecordValidationError(errors)
        if not objs:
            return []

        with _WRITE_LOCKS[kind], Session(self.engine) as ses:
            ses.add_all(objs)
            ses.commit()
            for obj in objs:
                ses.refresh(obj)
            out = [obj.model_dump(mode="json") for obj in objs]
        logger.info("create_many[%s]: inserted=%d", kind, len(out))
        return out

    def update(self, kind: str, record_id: str, data: dict) -> Record:
        """Partial update: only the fields present (and not null) in ``data``."""
        table, _create, _read, update = _schemas(kind)
        try:
            patch = update.model_validate(data)
        except ValidationError as e:
            raise RecordValidationError([{"row": 0, "message": _messages(e)}]) from e
        values = patch.model_dump(exclude_unset=True, exclude_none=True)

        with _WRITE_LOCKS[kind], Session(self.engine) as ses:
            row = ses.get(table, record_id)
            if row is None:
                raise RecordNotFound(kind, record_id)
            for key, value in values.items():
                setattr(row, key, value)
            row.updated_at = utcnow()
            ses.add(row)
            ses.commit()
            ses.refresh(row)
            return row.model_dump(mode="json")

    def delete(self, kind: str, record_id: str) -> bool:
        return self.bulk_delete(kind, [record_id]) == 1

    def bulk_delete(self, kind: str, ids: Sequence[str]) -> int:
        """Remove the listed ids; returns how many rows actually existed."""
        ids = [i for i in dict.fromkeys(ids) if i]
        if not ids:
            return 0
        table = _schemas(kind)[0]
        with _WRITE_LOCKS[kind], Session(self.engine) as ses:
            rows = ses.exec(select(table).where(col(table.id).in_(ids))).all()
            for row in rows:
                ses.delete(row)
            ses.commit()
        logger.info("bulk_delete[%s]: requested=%d deleted=%d", kind, len(ids), len(rows))
        return len(rows)

    def replace_all(self, kind: str, rows: Iterable[dict]) -> int:
        """Overwrite the whole table with ``rows`` (ids / timestamps kept)."""
        table, _create, read, _update = _schemas(kind)
        objs = []
        for i, data in enumerate(rows):
            try:
                objs.append(table(**read.model_validate(data).model_dump()))
            except ValidationError as e:
                raise RecordValidationError([{"row": i, "message": _messages(e)}]) from e

        with _WRITE_LOCKS[kind], Session(self.engine) as ses:
            ses.execute(sa_delete(table))
            ses.add_all(objs)
            ses.commit()
        return len(objs)

    def close(self) -> None:
        if self.engine is not default_engine:
            self.engine.dispose()


# --------------------------------------------------------------------------- #
# remote backend                                                              #
# --------------------------------------------------------------------------- #
class RemoteRecordStore:
    """Client for another instance's ``/v1/{kind}`` endpoints."""

    backend = "remote"

    def __init__(self, base_url: str = "", client: Optional[httpx.Client] = None,
                 timeout: float = PROBE_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # only the /health probe is time-limited
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=self.base_url, timeout=None)

    def _request(self, method: str, path: str, kind: str = "", record_id: str = "", **kw):
        try:
            resp = self._client.request(method, path, **kw)
        except httpx.TransportError as e:
            raise StoreUnavailable(f"{method} {path}: {e}") from e
        if resp.status_code >= 500:
            raise StoreUnavailable(f"{method} {path}: HTTP {resp.status_code}")
        if resp.status_code == 404 and record_id:
            raise RecordNotFound(kind, record_id)
        if resp.status_code == 422:
            detail = resp.json().get("detail")
            if not isinstance(detail, list):
                detail = [{"row": 0, "message": str(detail)}]
            raise RecordValidationError([
                {"row": e.get("row", 0), "message": e.get("message") or e.get("msg", "")}
                for e in detail
            ])
        if resp.status_code >= 400:
            # e.g. an older remote without the /bulk routes
            raise StoreUnavailable(f"{method} {path}: HTTP {resp.status_code}")
        return resp

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def ping(self) -> bool:
        try:
            resp = self._client.get("/health", timeout=self.timeout)
        except httpx.TransportError:
            return False
        return resp.status_code == 200

    def list(self, kind: str) -> List[Record]:
        return self._request("GET", f"/v1/{kind}", kind).json()

    def get(self, kind: str, record_id: str) -> Record:
        return self._request("GET", f"/v1/{kind}/{record_id}", kind, record_id).json()

    def create(self, kind: str, data: dict) -> Record:
        return self._request("POST", f"/v1/{kind}", kind, json=data).json()

    def create_many(self, kind: str, rows: Sequence[dict]) -> List[Record]:
        return self._request("POST", f"/v1/{kind}/bulk", kind, json=list(rows)).json()

    def update(self, kind: str, record_id: str, data: dict) -> Record:
        return self._request("PATCH", f"/v1/{kind}/{record_id}", kind, record_id, json=data).json()

    def delete(self, kind: str, record_id: str) -> bool:
        return self.bulk_delete(kind, [record_id]) == 1

    def bulk_delete(self, kind: str, ids: Sequence[str]) -> int:
        resp = self._request("POST", f"/v1/{kind}/bulk-delete", kind, json={"ids": list(ids)})
        return int(resp.json().get("deleted", 0))


# --------------------------------------------------------------------------- #
# remote with local cache                                                     #
# --------------------------------------------------------------------------- #
class FallbackRecordStore:
    """Remote store mirrored into a local :class:`SqlRecordStore`.

    ``connect()`` probes the remote once. While online, reads come from the
    remote and overwrite that kind in the cache; a successful mutation is
    followed by a full refresh of every kind. The first
    :class:`StoreUnavailable` switches everything to the cache for the rest
    of the session (call ``connect()`` again to retry). Changes written to
    the cache while offline are not pushed back.
    """

    def __init__(self, remote: RemoteRecordStore, cache: SqlRecordStore):
        self.remote = remote
        self.cache = cache
        self.online: Optional[bool] = None

    @property
    def backend(self) -> str:
        return "remote" if self.online else "cache"

    def status(self) -> dict:
        return {"backend": self.backend, "online": bool(self.online), "remote": self.remote.base_url}

    # ---- state ----
    def _set_online(self) -> None:
        if self.online is not True:
            logger.info("remote store reachable at %s; using remote", self.remote.base_url or "client")
        self.online = True

    def _set_offline(self, reason: object) -> None:
        if self.online is not False:
            logger.warning("remote store unavailable (%s); using local cache", reason)
        self.online = False

    def connect(self) -> bool:
        if not self.remote.ping():
            self._set_offline("probe failed")
            return False
        self._set_online()
        self.refresh_cache()
        return bool(self.online)

    def close(self) -> None:
        self.remote.close()
        self.cache.close()

    def _mirror(self, kind: str, rows: List[Record]) -> None:
        """Copy remote rows into the cache; a bad copy keeps the previous one."""
        try:
            self.cache.replace_all(kind, rows)
        except (RecordValidationError, SQLAlchemyError):
            logger.exception("cache refresh failed for %s; keeping previous copy", kind)

    def refresh_cache(self) -> None:
        for kind in KINDS:
            try:
                rows = self.remote.list(kind)
            except StoreUnavailable as e:
                self._set_offline(e)
                return
            self._mirror(kind, rows)

    # ---- reads ----
    def list(self, kind: str) -> List[Record]:
        if self.online:
            try:
                rows = self.remote.list(kind)
            except StoreUnavailable as e:
                self._set_offline(e)
            else:
                self._mirror(kind, rows)
                return rows
        return self.cache.list(kind)

    def get(self, kind: str, record_id: str) -> Record:
        if self.online:
            try:
                return self.remote.get(kind, record_id)
            except StoreUnavailable as e:
                self._set_offline(e)
        return self.cache.get(kind, record_id)

    # ---- writes ----
    def _mutate(self, op: str, *args):
        if self.online:
            try:
                result = getattr(self.remote, op)(*args)
            except StoreUnavailable as e:
                self._set_offline(e)
            else:
                self.refresh_cache()
                return result
        return getattr(self.cache, op)(*args)

    def create(self, kind: str, data: dict) -> Record:
        return self._mutate("create", kind, data)

    def create_many(self, kind: str, rows: Sequence[dict]) -> List[Record]:
        return self._mutate("create_many", kind, rows)

    def update(self, kind: str, record_id: str, data: dict) -> Record:
        return self._mutate("update", kind, record_id, data)

    def delete(self, kind: str, record_id: str) -> bool:
        return self._mutate("delete", kind, record_id)

    def bulk_delete(self, kind: str, ids: Sequence[str]) -> int:
        return self._mutate("bulk_delete", kind, ids)


# --------------------------------------------------------------------------- #
# factory / maintenance                                                       #
# --------------------------------------------------------------------------- #
def open_store() -> RecordStore:
    """Store for processes outside the API (worker, scripts).

    ``INBOUND_REMOTE_URL`` set → remote with SQLite cache, else the local DB.
    """
    remote_url = os.getenv("INBOUND_REMOTE_URL")
    if not remote_url:
        return SqlRecordStore()

    cache_engine = make_engine(os.getenv("INBOUND_CACHE_URL") or "sqlite:///./inbound_cache.db")
    SQLModel.metadata.create_all(cache_engine)
    store = FallbackRecordStore(RemoteRecordStore(remote_url), SqlRecordStore(cache_engine))
    store.connect()
    return store


def repair_operate_types(store: RecordStore) -> int:
    """Rewrite stored operate_type values to ``receive`` / ``putaway``.

    Unknown or missing types become ``receive``; differently cased valid
    types are lower-cased.
    """
    fixed = 0
    for row in store.list("transactions"):
        raw = row.get("operate_type")
        canonical = normalize_operate_type(raw)
        if raw == canonical:
            continue
        store.update("transactions", row["id"], {"operate_type": canonical})
        fixed += 1
    if fixed:
        logger.info("repair_operate_types: fixed=%d", fixed)
    return fixed


def search_records(kind: str, records: Iterable[Record], q: Optional[str]) -> List[Record]:
    """Case-insensitive substring filter over the kind's searchable columns."""
    records = list(records)
    needle = (q or "").strip().lower()
    if not needle:
        return records
    fields = SEARCH_FIELDS.get(kind, ())
    return [
        r for r in records
        if any(needle in str(r.get(f) or "").lower() for f in fields)
    ]
