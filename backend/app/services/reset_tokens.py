# backend/app/services/reset_tokens.py
"""
Replay guard for password reset tokens.

A reset token is a signed JWT that stays valid until it expires, so the
server has to remember which ones were already consumed. The check, the
password update and the "mark used" insert run inside one lock and one
transaction; two requests carrying the same token cannot both pass.

The primary key on token_hash backs this up across processes: a concurrent
insert from another worker fails with IntegrityError and is reported as
TokenAlreadyUsedError.
"""
from __future__ import annotations

import hashlib
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import TokenAlreadyUsedError
from app.db.session import transaction
from app.models import ResetPasswordTokenUsage

logger = logging.getLogger("codingchallenge")


def _hash_token(raw: str) -> str:
    return hashlib.sha256((raw or "").encode("utf-8")).hexdigest()


class ResetPasswordTokenGuard:
    def __init__(self) -> None:
        self._lock = threading.Lock()

    def is_used(self, db: Session, token: str) -> bool:
        return db.get(ResetPasswordTokenUsage, _hash_token(token)) is not None

    def mark_used(self, db: Session, token: str) -> None:
        db.add(ResetPasswordTokenUsage(token_hash=_hash_token(token), used_at=datetime.now(timezone.utc)))
        try:
            db.flush()
        except IntegrityError:
            raise TokenAlreadyUsedError("Token has already been used")

    @contextmanager
    def consume(self, db: Session, token: str) -> Iterator[Session]:
        """
        Critical section for one reset token.

        Raises TokenAlreadyUsedError before the body runs if the token was
        consumed earlier. The body's writes and the usage record are
        committed together; any error rolls both back.
        """
        with self._lock:
            if self.is_used(db, token):
                logger.warning("Rejected reuse of password reset token")
                raise TokenAlreadyUsedError("Token has already been used")

            with transaction(db):
                yield db
                self.mark_used(db, token)


reset_password_token_guard = ResetPasswordTokenGuard()
