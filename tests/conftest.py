# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Generator, Iterator
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from mediagate.core.security import create_access_token, new_anonymous_id
from mediagate.db.session import Base, enforce_sqlite_foreign_keys
from mediagate.db.session import get_db as app_get_session
from mediagate.main import app as fastapi_app
from mediagate.models import Content, Visibility

TEST_DB_URL = "sqlite://"

_ASSET_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enforce_sqlite_foreign_keys(engine)
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
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
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


def make_content(
    db_session: Session,
    *,
    owner_profile_id: str = "profile-1",
    visibility: Visibility = Visibility.PUBLIC,
    price: int | None = None,
    owner_user_id: str | None = "owner-user",
) -> Content:
    """Persist a content row with a unique asset URL."""
    asset = next(_ASSET_COUNTER)
    url = f"https://cdn.example.com/{owner_profile_id}/photo-{asset}.jpg"
    content = Content(
        id=f"content-{asset}",
        owner_profile_id=owner_profile_id,
        owner_user_id=owner_user_id,
        source_url=url,
        normalized_url=f"/{owner_profile_id}/photo-{asset}.jpg",
        visibility=visibility.value,
        price=price,
    )
    db_session.add(content)
    db_session.flush()
    return content


@pytest.fixture()
def public_content(db_session: Session) -> Content:
    return make_content(db_session)


@pytest.fixture()
def other_content(db_session: Session) -> Content:
    return make_content(db_session)


@pytest.fixture()
def premium_content(db_session: Session) -> Content:
    return make_content(db_session, visibility=Visibility.PREMIUM, price=9)


@pytest.fixture()
def private_content(db_session: Session) -> Content:
    return make_content(db_session, visibility=Visibility.PRIVATE)


@pytest.fixture()
def buyer_id() -> str:
    return "buyer-user"


@pytest.fixture()
def buyer_headers(buyer_id: str) -> dict[str, str]:
    """Return authorization headers for an authenticated buyer."""
    return {"Authorization": f"Bearer {create_access_token(buyer_id)}"}


@pytest.fixture()
def owner_headers() -> dict[str, str]:
    """Return authorization headers for the account owning the test content."""
    return {"Authorization": f"Bearer {create_access_token('owner-user')}"}


@pytest.fixture()
def guest_id() -> str:
    return new_anonymous_id()


@pytest.fixture()
def content_factory(db_session: Session):
    """Return a callable creating extra content rows in the test session."""

    def _factory(**kwargs) -> Content:
        return make_content(db_session, **kwargs)

    return _factory
