# backend/tests/test_password_reset.py
from __future__ import annotations

import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.errors import InvalidTokenError, TokenAlreadyUsedError, WeakPasswordError
from app.core.security import verify_password
from app.db.base import Base
from app.models import User, UserRole
from app.services import tokens
from app.services import users as user_service
from app.services.reset_tokens import reset_password_token_guard

from conftest import extract_reset_token

OLD_PASSWORD = "OldPassw0rd"
NEW_PASSWORD = "NewPassw0rd"


@pytest.fixture()
def registered(db):
    user_service.create_user(db, "admin@x.com", is_admin=True)
    user_service.set_password(db, "admin@x.com", OLD_PASSWORD, is_admin=True)
    return "admin@x.com"


def test_request_password_change_emails_reset_link(db, registered, sent_emails):
    user_service.request_password_change(db, registered)

    assert len(sent_emails) == 1
    assert sent_emails[0]["to"] == registered
    assert sent_emails[0]["subject"] == user_service.RESET_PASSWORD_SUBJECT
    token = extract_reset_token(sent_emails[0]["text"])
    assert tokens.get_claim_item(token, tokens.MAIL_KEY, tokens.RESET_TOKEN_TYPE) == registered


def test_request_password_change_for_unknown_email_sends_nothing(db, sent_emails):
    user_service.request_password_change(db, "ghost@x.com")
    assert sent_emails == []


def test_change_password_then_reuse_is_rejected(db, registered):
    token = tokens.create_reset_token(registered)

    user_service.change_password(db, token, NEW_PASSWORD)
    assert verify_password(NEW_PASSWORD, db.get(User, registered).hashed_password)
    assert reset_password_token_guard.is_used(db, token)

    with pytest.raises(TokenAlreadyUsedError):
        user_service.change_password(db, token, "Third1Password")
    db.expire_all()
    assert verify_password(NEW_PASSWORD, db.get(User, registered).hashed_password)


def test_change_password_keeps_role(db, registered):
    user_service.change_password(db, tokens.create_reset_token(registered), NEW_PASSWORD)
    assert db.get(User, registered).role.value == "ADMIN"


def test_weak_password_does_not_consume_token(db, registered):
    token = tokens.create_reset_token(registered)

    with pytest.raises(WeakPasswordError):
        user_service.change_password(db, token, "weak")
    assert not reset_password_token_guard.is_used(db, token)

    user_service.change_password(db, token, NEW_PASSWORD)
    assert reset_password_token_guard.is_used(db, token)


def test_invite_token_cannot_reset_password(db, registered):
    invite, _ = tokens.create_invite_token(registered, True)

    with pytest.raises(InvalidTokenError):
        user_service.change_password(db, invite, NEW_PASSWORD)
    assert verify_password(OLD_PASSWORD, db.get(User, registered).hashed_password)


def test_concurrent_change_password_with_same_token_succeeds_once(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'reset.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    Factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    setup = Factory()
    try:
        setup.add(User(email="a@x.com", hashed_password="x", role=UserRole.USER))
        setup.commit()
    finally:
        setup.close()

    token = tokens.create_reset_token("a@x.com")
    barrier = threading.Barrier(2)
    results = []
    results_lock = threading.Lock()

    def _worker(password: str) -> None:
        session = Factory()
        try:
            barrier.wait()
            user_service.change_password(session, token, password)
            outcome = ("ok", password)
        except TokenAlreadyUsedError:
            outcome = ("used", password)
        finally:
            session.close()
        with results_lock:
            results.append(outcome)

    threads = [
        threading.Thread(target=_worker, args=("First1Password",)),
        threading.Thread(target=_worker, args=("Second1Password",)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    outcomes = sorted(r[0] for r in results)
    assert outcomes == ["ok", "used"]

    winner = next(pw for status, pw in results if status == "ok")
    check = Factory()
    try:
        assert verify_password(winner, check.get(User, "a@x.com").hashed_password)
    finally:
        check.close()
    engine.dispose()
