import os
from dataclasses import dataclass

# Settings are read at import time; tests never talk to a real database.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.rate_limiter import rate_limiter
from app.database import Base, _register_models, get_db
from app.dependencies import get_current_admin
from app.main import app


@dataclass
class StubAdmin:
    id: int = 1
    username: str = "admin"
    is_active: bool = True
    password_hash: str = "hashed-password"


class FakeSession:
    """Stands in for a Session when repo calls are monkeypatched."""

    def __init__(self):
        self.commits = 0
        self.rollbacks = 0

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def expire_all(self):
        return None

    def close(self):
        return None


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def stub_admin() -> StubAdmin:
    return StubAdmin()


@pytest.fixture
def fake_db() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(fake_db: FakeSession):
    def _db_override():
        yield fake_db

    app.dependency_overrides[get_db] = _db_override
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(fake_db: FakeSession, stub_admin: StubAdmin):
    def _db_override():
        yield fake_db

    app.dependency_overrides[get_db] = _db_override
    app.dependency_overrides[get_current_admin] = lambda: stub_admin
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT; let SQLAlchemy emit it.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    _register_models()
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def db_admin_client(db_session, stub_admin: StubAdmin):
    """Admin client backed by the in-memory SQLite session."""

    def _db_override():
        yield db_session

    app.dependency_overrides[get_db] = _db_override
    app.dependency_overrides[get_current_admin] = lambda: stub_admin
    yield TestClient(app)
    app.dependency_overrides.clear()
