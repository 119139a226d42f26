# tests/conftest.py
import os
import tempfile

# Configuration is read at import time, so the environment must be set
# before anything from edlhub is imported.
_DB_DIR = tempfile.mkdtemp(prefix="edlhub-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'edlhub-test.db')}"
os.environ["NOTIFY_ENABLED"] = "false"
os.environ["EXPIRATION_SWEEP_ENABLED"] = "false"
os.environ["FEED_SYNC_INTERVAL_SECONDS"] = "0"
os.environ["ABUSEIPDB_API_KEY"] = ""
os.environ["VIRUSTOTAL_API_KEY"] = ""
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

import edlhub.models  # noqa: F401
from edlhub.db import Base, SessionLocal, engine
from edlhub.db_init import seed_default_categories
from edlhub.services.categories import CategoryService


@pytest.fixture
def db():
    """Fresh schema with the default categories for every test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    seed_default_categories(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    """TestClient bound to the same database as the db fixture"""
    from fastapi.testclient import TestClient
    from edlhub.main import app
    return TestClient(app)


@pytest.fixture
def category_id(db):
    """Look up a category id by name"""
    def _lookup(name: str) -> str:
        return CategoryService.get_by_name(db, name).id
    return _lookup
