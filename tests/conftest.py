import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from buildtrack import models  # noqa: E402,F401  registers every table
from buildtrack.app import create_app  # noqa: E402
from buildtrack.crud.users import create_user  # noqa: E402
from buildtrack.db.session import Base, get_db  # noqa: E402
from buildtrack.models.catalog import Item, Warehouse  # noqa: E402
from buildtrack.models.project import Project  # noqa: E402
from buildtrack.models.supplier import Supplier  # noqa: E402
from buildtrack.models.user import User  # noqa: E402


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def db_session(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def _add(session, obj):
    session.add(obj)
    session.commit()
    session.refresh(obj)
    return obj


@pytest.fixture()
def user(db_session):
    return _add(db_session, User(name="Store Keeper", email="store@example.com", password_hash="x", role="Admin"))


@pytest.fixture()
def project(db_session):
    return _add(db_session, Project(name="Riverside Towers", status="ACTIVE", budget=100000.0))


@pytest.fixture()
def warehouse(db_session):
    return _add(db_session, Warehouse(name="Central Store", is_active=True))


@pytest.fixture()
def item(db_session):
    return _add(
        db_session,
        Item(code="CEM-53", name="OPC 53 Cement", unit="bag", category="Cement", brand="UltraTech"),
    )


@pytest.fixture()
def supplier(db_session):
    return _add(db_session, Supplier(name="Acme Building Supplies", phone="98450 12345", is_active=True))


@pytest.fixture()
def client(engine):
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture()
def login(client, db_session):
    """Create a user with ``role`` and return bearer headers for it."""

    def _login(email, role, password="secret123"):
        create_user(db_session, {"name": email.split("@")[0].title(), "email": email, "password": password, "role": role})
        response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture()
def admin_headers(login):
    return login("admin@example.com", "Admin")
