# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Sets up environment variables before any app import, then provides an
# in-memory database, a temporary blob store and a TestClient wired to both.
# =============================================================================

import os
import tempfile

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# postapi.core.config builds its settings and postapi.db.session its engine
# at import time

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIRECTORY"] = tempfile.mkdtemp(prefix="postapi-tests-")
os.environ["BASE_URL"] = "http://testserver"
os.environ["ENVIRONMENT"] = "test"
os.environ["R2_ENDPOINT"] = ""
os.environ["R2_ACCESS_KEY_ID"] = ""
os.environ["R2_SECRET_ACCESS_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from postapi.core.storage import LocalBlobStore, get_blob_store
from postapi.db.init_db import create_all_tables
from postapi.db.session import get_db
from postapi.main import app
from postapi.modules.posts.services.manager import PostManager
from postapi.modules.posts.services.post import PostRepository


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(str(tmp_path / "storage"), "http://testserver")


@pytest.fixture
def repository(db):
    return PostRepository(db)


@pytest.fixture
def manager(repository, blob_store):
    return PostManager(repository, blob_store)


@pytest.fixture
def client(session_factory, blob_store):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
