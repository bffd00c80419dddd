# tests/conftest.py
import os
import tempfile

# Settings are read once at import time, so the environment has to be in
# place before anything from klefki is imported.
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("JWT_AUDIENCE", "klefki")
os.environ.setdefault("DATABASE_URL", os.path.join(tempfile.mkdtemp(prefix="klefki-"), "default.db"))

import pytest
from fastapi.testclient import TestClient

from klefki.app.main import app
from klefki.app.core.db import init_db
from klefki.app.core.security import create_access_token
from klefki.app.services.exchange_service import ExchangeService, get_exchange_service
from klefki.app.services.exchange_store import ExchangeStore


# ------------------ Storage wiring ------------------

@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "exchanges.db")
    init_db(path)
    return path


@pytest.fixture
def store(db_path):
    return ExchangeStore(db_path)


@pytest.fixture
def service(store):
    return ExchangeService(store)


@pytest.fixture(autouse=True)
def _override_service(service):
    """
    Give each test a fresh database by overriding the app dependency.
    """
    app.dependency_overrides[get_exchange_service] = lambda: service
    try:
        yield
    finally:
        app.dependency_overrides.clear()


# ------------------ HTTP helpers ------------------

@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def token():
    return create_access_token({"sub": "alice"})


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}
