"""Pytest configuration and fixtures."""

import os
import tempfile

from helpers import TEST_OIDC_SECRET

# Settings are read at import time, so the environment is fixed up first.
_BOOTSTRAP_DIR = tempfile.mkdtemp(prefix="onboarding-tests-")
os.environ["DB_URL"] = f"sqlite:///{os.path.join(_BOOTSTRAP_DIR, 'bootstrap.db')}"
os.environ["OIDC_CLIENT_SECRET"] = TEST_OIDC_SECRET
os.environ["OIDC_ISSUER_URL"] = ""
os.environ["OIDC_AUDIENCE"] = ""
os.environ["OIDC_JWKS_URL"] = ""
os.environ["AUTH0_DOMAIN"] = "tenant.example.auth0.com"

import pytest
from fastapi.testclient import TestClient

from core.db.base import Base
from core.db.dependencies import get_db
from core.db.session import build_engine, build_sessionmaker
from main import app


@pytest.fixture(scope="function")
def engine(tmp_path):
    """Fresh file-backed SQLite database per test."""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def read_db(session_factory):
    """Run ``fn(session)`` in a short-lived session and return its result."""
    def _read(fn):
        session = session_factory()
        try:
            return fn(session)
        finally:
            session.close()
    return _read


@pytest.fixture(scope="function")
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_db, None)
