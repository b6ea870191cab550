from sqlmodel import SQLModel, create_engine
import os

DATABASE_URL = os.getenv("DATABASE_URL") or "sqlite:///./inbound.db"


def make_engine(url: str):
    """SQLite needs cross-thread access for FastAPI's threadpool."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(
        url.replace("+asyncpg", ""),  # sync engine is enough for Alembic / SQLModel
        echo=False,
        connect_args=connect_args,
    )


engine = make_engine(DATABASE_URL)
