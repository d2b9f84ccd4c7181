# backend/app/services/validation.py
import re

from pydantic import EmailStr, TypeAdapter, ValidationError

from app.core.config import settings
from app.core.errors import InvalidEmailError, WeakPasswordError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_email_adapter = TypeAdapter(EmailStr)


def validate_email(email: str) -> None:
    e = (email or "").strip()
    if not _EMAIL_RE.match(e):
        raise InvalidEmailError(f"Invalid email address: {email!r}")

    # Strict RFC + domain syntax check only in prod; dev/test use throwaway addresses.
    if settings.is_prod:
        try:
            _email_adapter.validate_python(e)
        except ValidationError:
            raise InvalidEmailError(f"Invalid email address: {email!r}")


def validate_password(password: str) -> None:
    """
    At least PASSWORD_MIN_LENGTH characters with a lower-case letter, an
    upper-case letter and a digit.
    """
    pw = password or ""
    min_len = settings.password_min_length
    if len(pw) < min_len:
        raise WeakPasswordError(f"Password must be at least {min_len} characters.")
    if not re.search(r"[a-z]", pw) or not re.search(r"[A-Z]", pw):
        raise WeakPasswordError("Password must contain upper- and lower-case letters.")
    if not re.search(r"\d", pw):
        raise WeakPasswordError("Password must contain at least one digit.")
