"""Integration test fixtures with a real database and transaction-rollback isolation.

Provides:
- Session-scoped SQLite in-memory engine with the schema applied
- Per-test transaction rollback so tests don't leak state
- Real FastAPI app with dependency overrides pointing at the test DB
- Async HTTP client for exercising endpoints end-to-end
"""

import inspect

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from server.database import Base

INTEGRATION_CI_CONFIG = {
    'verify_api_key': True,
    'default_reporter': {'user_id': None, 'email': None},
    'link_base_url': 'https://github.com',
}


@pytest.fixture(scope="session")
def integration_engine():
    """Create a real database engine for the test session."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        # pysqlite's own BEGIN handling breaks SAVEPOINT; let SQLAlchemy emit it
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)

    yield engine

    engine.dispose()


@pytest.fixture()
def integration_db(integration_engine):
    """Provide a real DB session that rolls back after each test.

    Commits made by the code under test only release a savepoint, so the
    outer transaction still discards everything.
    """
    connection = integration_engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture()
def ci_config():
    """Mutable CI settings handed to the ingestion endpoint."""
    return {**INTEGRATION_CI_CONFIG, 'default_reporter': dict(INTEGRATION_CI_CONFIG['default_reporter'])}


@pytest.fixture()
def integration_app(integration_db, ci_config):
    """FastAPI app with get_db and the CI settings overridden for the test."""
    from server.app import app
    from server.database import get_db
    from server.routers.ci_report import get_ci_config

    def _override_get_db():
        yield integration_db

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_ci_config] = lambda: ci_config
    yield app
    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_ci_config, None)


@pytest_asyncio.fixture()
async def client(integration_app):
    """Async HTTP client that talks to the real app + real DB."""
    ASGITransport = getattr(httpx, "ASGITransport", None)
    if ASGITransport is None:
        from httpx._transports.asgi import ASGITransport  # type: ignore[attr-defined]

    transport_kwargs = {"app": integration_app}
    if "lifespan" in inspect.signature(ASGITransport).parameters:
        transport_kwargs["lifespan"] = "off"

    transport = ASGITransport(**transport_kwargs)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture()
def db_service(integration_db):
    from server.services.database_service import DatabaseService

    return DatabaseService(integration_db)


@pytest.fixture()
def seed_admin(db_service):
    """Create the admin account that automatically filed bugs are attributed to."""
    from server.models import UserRole

    return db_service.create_user(email="admin@example.com", name="Admin", role=UserRole.ADMIN)


@pytest.fixture()
def seed_project(db_service):
    """Factory fixture: create a project and return it with its plaintext API key."""

    def _create(name="Frontend App", repository="acme/web", with_api_key=True):
        return db_service.create_project(name=name, repository=repository, with_api_key=with_api_key)

    return _create
