# backend/app/services/tokens.py
"""
Signed, time-bounded claims tokens.

Three token types share the process-wide signing key:
  - "invite": {email, admin}, sent in invite links
  - "reset":  {email}, sent in password reset links
  - "access": {sub}, the session token set as a cookie after login/registration

Expiry is enforced by `decode_token` itself; application bookkeeping (the
invite expiration store, the reset guard) is checked on top of it.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from jose import JWTError, jwt

from app.core.config import settings
from app.core.errors import InvalidTokenError

MAIL_KEY = "email"
ADMIN_KEY = "admin"
TYPE_KEY = "type"

INVITE_TOKEN_TYPE = "invite"
RESET_TOKEN_TYPE = "reset"
ACCESS_TOKEN_TYPE = "access"


def _utcnow() -> datetime:
    # Whole seconds: JWT `exp` has second resolution and the invite
    # expiration store compares against it in millis.
    return datetime.now(timezone.utc).replace(microsecond=0)


def to_epoch_millis(dt: datetime) -> int:
    return int(dt.timestamp()) * 1000


def issue_token(claims: Dict[str, Any], expires_at: datetime) -> str:
    to_encode = dict(claims)
    to_encode["exp"] = expires_at
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, expected_type: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    Raises InvalidTokenError on a bad signature, an expired token, or a token
    of a different type than `expected_type`.
    """
    try:
        payload = jwt.decode(token or "", settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise InvalidTokenError(f"Invalid or expired token: {e}")

    if expected_type is not None and payload.get(TYPE_KEY) != expected_type:
        raise InvalidTokenError("Invalid token type")

    return payload


def get_claim_item(token: str, key: str, expected_type: Optional[str] = None) -> Any:
    payload = decode_token(token, expected_type)
    if key not in payload:
        raise InvalidTokenError(f"Token is missing claim '{key}'")
    return payload[key]


def create_invite_token(email: str, is_admin: bool) -> Tuple[str, datetime]:
    expires_at = _utcnow() + timedelta(days=settings.invite_link_expiration_days)
    token = issue_token(
        {MAIL_KEY: email, ADMIN_KEY: bool(is_admin), TYPE_KEY: INVITE_TOKEN_TYPE},
        expires_at,
    )
    return token, expires_at


def decode_invite_token(token: str) -> Tuple[str, bool, int]:
    """Return (email, is_admin, embedded expiry in epoch millis)."""
    payload = decode_token(token, INVITE_TOKEN_TYPE)
    email = payload.get(MAIL_KEY)
    is_admin = payload.get(ADMIN_KEY)
    if not isinstance(email, str) or not isinstance(is_admin, bool):
        raise InvalidTokenError("Invite token payload is malformed")
    return email, is_admin, int(payload["exp"]) * 1000


def create_reset_token(email: str) -> str:
    expires_at = _utcnow() + timedelta(minutes=settings.reset_password_expiration_minutes)
    return issue_token({MAIL_KEY: email, TYPE_KEY: RESET_TOKEN_TYPE}, expires_at)


def create_access_token(email: str) -> str:
    expires_at = _utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    return issue_token({"sub": email, TYPE_KEY: ACCESS_TOKEN_TYPE}, expires_at)
