# backend/tests/conftest.py
from __future__ import annotations

import re

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.rate_limit import login_rate_limit, password_reset_rate_limit
from app.db.base import Base
from app.db.session import get_db
from app.models import Project
from app.services import users as user_service

ADMIN_EMAIL = "admin@example.org"
ADMIN_PASSWORD = "AdminPassw0rd"


def extract_invite_token(html: str) -> str:
    m = re.search(r"/invite/([^\"\s<]+)", html or "")
    assert m, f"Could not find an invite link in email body:\n{html}"
    return m.group(1)


def extract_reset_token(text: str) -> str:
    m = re.search(r"/reset-password/([^\"\s<]+)", text or "")
    assert m, f"Could not find a reset link in email body:\n{text}"
    return m.group(1)


@pytest.fixture()
def session_factory():
    """
    Shared in-memory SQLite. StaticPool keeps the single connection (and so
    the database) alive across sessions.
    """
    engine = create_engine(
        "sqlite+pysqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def projects(session_factory):
    """Two active projects and one inactive one; returns the active ids."""
    session = session_factory()
    try:
        active = [Project(title="Todo API", active=True), Project(title="Chat Bot", active=True)]
        inactive = Project(title="Retired Kata", active=False)
        session.add_all(active + [inactive])
        session.commit()
        return {p.id for p in active}
    finally:
        session.close()


@pytest.fixture()
def sent_emails(monkeypatch):
    sent = []

    def _fake_send_email(*, to_email: str, subject: str, text_body: str, html_body=None):
        sent.append({"to": to_email, "subject": subject, "text": text_body, "html": html_body})

    monkeypatch.setattr(user_service, "send_email", _fake_send_email)
    return sent


@pytest.fixture()
def admin(session_factory):
    session = session_factory()
    try:
        user_service.create_user(session, ADMIN_EMAIL, is_admin=True)
        user_service.set_password(session, ADMIN_EMAIL, ADMIN_PASSWORD, is_admin=True)
    finally:
        session.close()
    return ADMIN_EMAIL


@pytest.fixture()
def app_client(session_factory, sent_emails):
    from app.main import app

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    login_rate_limit.reset()
    password_reset_rate_limit.reset()
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def admin_client(app_client, admin):
    client = TestClient(app_client)
    r = client.post("/api/v1/auth/login", data={"username": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert r.status_code == 200, r.text
    return client
