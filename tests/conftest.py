import os
from typing import Callable, Dict, Generator, Iterator

import pytest

os.environ.setdefault("DATABASE_ALLOW_NON_POSTGRES", "1")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("DATABASE_URL", os.environ["TEST_DATABASE_URL"])

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.engine import Engine
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import database as database_module
import models  # noqa: F401
from database import Base, get_db
from services.submission_rate_limiter import InMemoryRateLimitStore, SubmissionRateLimiter
from web.deps import get_submission_rate_limiter
from web.main import app

ADMIN_TOKEN = "test-admin-token"
ADMIN_AUTH_HEADER = {"Authorization": f"Bearer {ADMIN_TOKEN}"}


# PostgreSQL-only column types render as TEXT on SQLite.
@compiles(JSONB, "sqlite")  # type: ignore[misc]
def _compile_jsonb_sqlite(_element, _compiler, **_kw):  # pragma: no cover - sqlite compat
    return "TEXT"


@compiles(UUID, "sqlite")  # type: ignore[misc]
def _compile_uuid_sqlite(_element, _compiler, **_kw):  # pragma: no cover - sqlite compat
    return "TEXT"


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    test_engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def rate_limiter() -> SubmissionRateLimiter:
    return SubmissionRateLimiter(InMemoryRateLimitStore(), limit=1000, window_seconds=60)


@pytest.fixture()
def client(
    session_factory: sessionmaker,
    rate_limiter: SubmissionRateLimiter,
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[TestClient]:
    monkeypatch.setenv("ADMIN_API_TOKEN", ADMIN_TOKEN)
    monkeypatch.setenv("ADMIN_API_ACTOR", "qa-admin@example.com")
    monkeypatch.delenv("ADMIN_API_TOKENS", raising=False)
    monkeypatch.setattr(database_module, "SessionLocal", session_factory)

    def _override_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_submission_rate_limiter] = lambda: rate_limiter
    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        test_client.close()
        app.dependency_overrides.clear()


@pytest.fixture()
def make_campaign(client: TestClient) -> Callable[..., Dict]:
    """Create a campaign through the admin API and return the response body."""

    def _make(**overrides) -> Dict:
        payload = {
            "title": "Spring Launch",
            "status": "PUBLISHED",
            "enableForm": True,
            "formFields": [{"name": "email", "type": "email", "required": True}],
        }
        payload.update(overrides)
        response = client.post("/api/v1/campaigns", json=payload, headers=ADMIN_AUTH_HEADER)
        assert response.status_code == 201, response.text
        return response.json()

    return _make
