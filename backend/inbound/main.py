from contextlib import asynccontextmanager
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles


# ---- load .env files (backend/.env then repo .env) ----------------------
CURRENT_FILE = Path(__file__).resolve()
BACKEND_DIR = CURRENT_FILE.parents[1]
REPO_ROOT = CURRENT_FILE.parents[2]

_env_candidates = [
    BACKEND_DIR / ".env.local",
    BACKEND_DIR / ".env",
    REPO_ROOT / ".env.local",
    REPO_ROOT / ".env",
]
_loaded = []
for env_path in _env_candidates:
    if env_path.exists():
        # Do not override already-set env vars; load in priority order
        load_dotenv(env_path, override=False)
        _loaded.append(str(env_path))

if _loaded:
    print(f"[main] Loaded env files: {', '.join(_loaded)}")
else:
    print("[main] No .env file found next to backend/ or repo root.")

if not os.getenv("DATABASE_URL"):
    print("[main] Info: DATABASE_URL not set; using sqlite:///./inbound.db")

# Routers read configuration at import time, so import after .env loading
from inbound.core.celery_app import init_celery
from inbound.core.database import engine
from inbound.routers import dashboard, records, transfer, vas_tasks
from inbound.services.store import SqlRecordStore, repair_operate_types
from inbound.services.vas_tasks import VasTaskBoard
from sqlmodel import SQLModel

import inbound.models  # noqa: F401  (registers tables on SQLModel.metadata)

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    if os.getenv("AUTO_CREATE_TABLES", "1").strip().lower() in _TRUTHY:
        SQLModel.metadata.create_all(engine)
    fixed = repair_operate_types(SqlRecordStore(engine))
    if fixed:
        print(f"[main] Repaired operate_type on {fixed} transaction(s)")
    init_celery()
    yield


app = FastAPI(title="Inbound Log Book API", lifespan=lifespan)
app.state.vas_tasks = VasTaskBoard()


# ---- CORS (dev-friendly) ----------------------------------------------
_default_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]
_env = os.getenv("FRONTEND_ORIGINS") or os.getenv("FRONTEND_ORIGIN") or ""
_env_list = [o.strip() for o in _env.split(",") if o and o.strip()]
origins = sorted(set(_default_origins + _env_list))

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1|0\.0\.0\.0)(:\d+)?$",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=86400,
)

# ---- serve generated error CSVs ------------------------------------------
app.mount("/files", StaticFiles(directory=str(transfer.ERROR_DIR)), name="files")

# ---- register routers ------------------------------------------------------
for _router in records.routers:
    app.include_router(_router)
app.include_router(dashboard.router)
app.include_router(vas_tasks.router)
app.include_router(transfer.router)


# ---- simple health check ---------------------------------------------------
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe; also used by remote clients before switching to the cache."""
    return {"status": "ok"}
