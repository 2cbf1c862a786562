# tests/conftest.py
from __future__ import annotations

import time
import uuid
from collections.abc import Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from noa_api.core.settings import settings
from noa_api.db.session import Base
from noa_api.db.session import get_db as app_get_session
from noa_api.main import app as fastapi_app
from noa_api.models import Profile

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def make_access_token(subject: str, **claims: Any) -> str:
    """Sign a token the way Supabase does for an authenticated session."""
    payload: dict[str, Any] = {
        "sub": subject,
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "exp": int(time.time()) + 3600,
    }
    payload.update(claims)
    return jwt.encode(payload, settings.supabase_jwt_secret, algorithm=settings.jwt_algorithm)


def _create_profile(db_session: Session, username: str, *, is_admin: bool = False) -> Profile:
    profile = Profile(
        id=str(uuid.uuid4()),
        username=username,
        avatar_url=f"https://cdn.example.com/{username}.png",
        is_admin=is_admin,
    )
    db_session.add(profile)
    db_session.flush()
    db_session.refresh(profile)
    return profile


@pytest.fixture()
def test_user(db_session: Session) -> Iterator[Profile]:
    """Create and return a persisted reader profile."""
    yield _create_profile(db_session, "reader")


@pytest.fixture()
def other_user(db_session: Session) -> Iterator[Profile]:
    """Create and return a second reader profile."""
    yield _create_profile(db_session, "other")


@pytest.fixture()
def moderator(db_session: Session) -> Iterator[Profile]:
    """Create and return a moderator profile."""
    yield _create_profile(db_session, "moderator", is_admin=True)


@pytest.fixture()
def auth_token(test_user: Profile) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return {"Authorization": f"Bearer {make_access_token(test_user.id)}"}


@pytest.fixture()
def other_auth_token(other_user: Profile) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return {"Authorization": f"Bearer {make_access_token(other_user.id)}"}


@pytest.fixture()
def token_factory() -> Any:
    """Expose the token signer to tests that need custom claims."""
    return make_access_token


@pytest.fixture()
def moderator_token(moderator: Profile) -> dict[str, str]:
    """Return authorization headers for the moderator."""
    return {"Authorization": f"Bearer {make_access_token(moderator.id)}"}
