import os

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["ENABLE_CREATE_ALL"] = "0"
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("APP_ORIGIN", "https://loot.example")
os.environ["SMTP_HOST"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.core.auth import get_db  # noqa: E402
from app.core.errors import TransientIO  # noqa: E402
from app.crud.campaign import create_campaign_with_treasury  # noqa: E402
from app.crud.user import create_user  # noqa: E402
from app.db.session import make_engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Base  # noqa: E402
from app.services.notifications import get_dispatcher  # noqa: E402

PASSWORD = "correct-horse-battery"


class RecordingDispatcher:
    def __init__(self):
        self.sent = []

    def send(self, email):
        self.sent.append(email)


class FailingDispatcher:
    def __init__(self):
        self.attempts = 0

    def send(self, email):
        self.attempts += 1
        raise TransientIO("SMTP relay refused the connection.")


@pytest.fixture
def engine(tmp_path):
    # file-backed so several sessions see the same data
    eng = make_engine(f"sqlite:///{tmp_path / 'loot.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def client(session_factory, dispatcher):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(email, display_name=None):
        return create_user(db, email, PASSWORD, display_name)

    return _make


@pytest.fixture
def make_campaign(db):
    def _make(owner, name="Curse of Strahd", system="dnd-5e"):
        return create_campaign_with_treasury(db, name, owner.id, system)

    return _make


@pytest.fixture
def auth_headers(client):
    """Register (if needed) and log in through the API; returns bearer headers."""

    def _headers(email, display_name=None):
        client.post(
            "/api/v1/register",
            json={"email": email, "password": PASSWORD, "display_name": display_name},
        )
        resp = client.post("/api/v1/login", data={"username": email, "password": PASSWORD})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['access_token']}"}

    return _headers
