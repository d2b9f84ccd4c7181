from __future__ import annotations

from typing import Optional

from fastapi import Cookie, Depends
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ForbiddenError, InvalidTokenError, UnauthorizedError
from app.db.session import get_db
from app.models import User, UserRole
from app.services.invites import normalize_email
from app.services.tokens import ACCESS_TOKEN_TYPE, decode_token

# Hard guard: never allow the default secret in production-like envs
if settings.is_prod and settings.jwt_secret in {"supersecret", "changeme", "secret", ""}:
    raise RuntimeError(
        "Insecure JWT_SECRET configured in production environment. "
        "Set a strong random secret via the JWT_SECRET env var."
    )

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

# Bearer is optional: browsers use the session cookie set on login/registration.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    return pwd_context.verify(password, hashed_password)


def authenticate_user(db: Session, email: str, password: str) -> User:
    """
    Resolve email + password to a registered user.

    INIT users are rejected even with the right password: their password is a
    random placeholder until registration sets a real one.
    """
    user = db.get(User, normalize_email(email))
    if user is None or not verify_password(password or "", user.hashed_password):
        raise UnauthorizedError("Invalid email or password")
    if UserRole(user.role) == UserRole.INIT:
        raise UnauthorizedError("User has not completed registration")
    return user


def get_current_user(
    bearer: Optional[str] = Depends(oauth2_scheme),
    session_token: Optional[str] = Cookie(default=None, alias=settings.session_cookie_name),
    db: Session = Depends(get_db),
) -> User:
    """
    Currently authenticated principal, from the session cookie or a Bearer token.
    """
    token = bearer or session_token
    if not token:
        raise UnauthorizedError("Not authenticated")

    try:
        payload = decode_token(token, ACCESS_TOKEN_TYPE)
    except InvalidTokenError:
        raise UnauthorizedError("Invalid or expired session")

    email = payload.get("sub")
    if not email:
        raise UnauthorizedError("Invalid token payload")

    user = db.get(User, normalize_email(str(email)))
    if user is None:
        raise UnauthorizedError("User not found")

    return user


def get_current_email(user: User = Depends(get_current_user)) -> str:
    return user.email


def require_admin(user: User = Depends(get_current_user)) -> User:
    if UserRole(user.role) != UserRole.ADMIN:
        raise ForbiddenError("Admin role required for this operation.")
    return user
