import os
import tempfile

# must be set before anything under inbound.* is imported
_TMP_DIR = tempfile.mkdtemp(prefix="inbound-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/test.db"
os.environ["UPLOAD_ERROR_DIR"] = os.path.join(_TMP_DIR, "upload_errors")
os.environ.pop("INBOUND_REMOTE_URL", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete
from sqlmodel import Session, SQLModel

from inbound.core.database import engine
from inbound.models import KINDS
from inbound.services.store import SqlRecordStore


@pytest.fixture(scope="session", autouse=True)
def create_test_db():
    SQLModel.metadata.create_all(engine)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with Session(engine) as ses:
        for table, *_ in KINDS.values():
            ses.execute(delete(table))
        ses.commit()


@pytest.fixture
def store():
    return SqlRecordStore(engine)


@pytest.fixture
def client():
    from inbound.main import app
    return TestClient(app)
