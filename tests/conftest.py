import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from frontdesk import models  # noqa: F401
from frontdesk.authn import create_user, login_limiter
from frontdesk.config import settings
from frontdesk.db import Base, get_db
from frontdesk.main import create_app
from frontdesk.models import Property

ADMIN_PASSWORD = "AdminPass123"
AGENT_PASSWORD = "AgentPass123"


@pytest.fixture
def session_factory(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "SCHEDULER_ENABLED", False)
    monkeypatch.setattr(settings, "DB_AUTO_CREATE_ALL", False)
    monkeypatch.setattr(settings, "AUTH_REQUIRED", True)
    monkeypatch.setattr(settings, "SMTP_USER", "")
    monkeypatch.setattr(settings, "SMTP_PASS", "")
    monkeypatch.setattr(settings, "REPORT_EMAIL_RECIPIENTS", [])
    login_limiter.reset()

    db_path = tmp_path / "test_frontdesk.db"
    engine = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def users(session_factory):
    with session_factory() as session:
        admin = create_user(
            session,
            username="admin",
            password=ADMIN_PASSWORD,
            full_name="Site Admin",
            role="admin",
            email="admin@example.com",
            requires_password_change=False,
        )
        agent = create_user(
            session,
            username="agent",
            password=AGENT_PASSWORD,
            full_name="Desk Agent",
            role="agent",
            email="agent@example.com",
            requires_password_change=False,
        )
        return {"admin": admin.id, "agent": agent.id}


@pytest.fixture
def login(client, users):
    passwords = {"admin": ADMIN_PASSWORD, "agent": AGENT_PASSWORD}

    def _login(username="admin", remember_me=False):
        res = client.post(
            "/api/auth/login",
            json={"username": username, "password": passwords[username], "remember_me": remember_me},
        )
        assert res.status_code == 200, res.text
        return res

    return _login


@pytest.fixture
def property_id(session_factory):
    with session_factory() as session:
        prop = Property(name="Ascher Tower", address="100 Main St")
        session.add(prop)
        session.commit()
        return prop.id
