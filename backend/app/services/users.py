# backend/app/services/users.py
"""
User lifecycle: invite, register, delete, role changes and password resets.

Every multi-row write runs inside app.db.session.transaction, so a failure
anywhere leaves no partial state behind. Emails are sent only after the
transaction has been committed.
"""
from __future__ import annotations

import logging
import secrets
import string
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.email import send_email
from app.core.errors import (
    ConflictError,
    InvalidTokenError,
    ResourceNotFoundError,
    UserAlreadyExistsError,
    UserAlreadyRegisteredError,
    UserSelfDeleteError,
)
from app.core.security import hash_password
from app.db.session import transaction
from app.models import User, UserRole
from app.services import invites as invite_store
from app.services.invites import normalize_email
from app.services.reset_tokens import reset_password_token_guard
from app.services.roles import (
    ROLE_CHANGE_TRANSITIONS,
    UserStatus,
    extract_user_status,
    is_admin,
    is_registered,
    role_for,
    validate_transition,
)
from app.services.submissions import assign_submission, fetch_submissions_for_user
from app.services.tokens import (
    MAIL_KEY,
    RESET_TOKEN_TYPE,
    create_invite_token,
    create_reset_token,
    decode_invite_token,
    get_claim_item,
    to_epoch_millis,
)
from app.services.validation import validate_email, validate_password

logger = logging.getLogger("codingchallenge")

INITIAL_PASSWORD_LENGTH = 20
_PASSWORD_ALPHABET = string.ascii_letters + string.digits

ADMIN_INVITE_SUBJECT = "Admin invitation to the Coding Challenge platform"
USER_INVITE_SUBJECT = "Your Coding Challenge invitation"
RESET_PASSWORD_SUBJECT = "Password Reset Requested"


class UserInfo(BaseModel):
    email: str
    is_admin: bool
    status: UserStatus


class DeletedUserInfo(BaseModel):
    email: str
    is_admin: bool


class IsAdminInfo(BaseModel):
    is_admin: bool


def _to_info(user: User) -> UserInfo:
    return UserInfo(email=user.email, is_admin=is_admin(user), status=extract_user_status(user))


def _find_user(db: Session, email: str) -> User:
    user = db.get(User, normalize_email(email))
    if user is None:
        raise ResourceNotFoundError(f"User with email {email} was not found")
    return user


def create_password(length: int = INITIAL_PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(_PASSWORD_ALPHABET) for _ in range(length))


# ---------- Queries ----------

def fetch_all_user_infos(db: Session) -> List[UserInfo]:
    return [_to_info(u) for u in db.query(User).order_by(User.email).all()]


def fetch_user_info(db: Session, email: str) -> UserInfo:
    return _to_info(_find_user(db, email))


def fetch_admin_status(user: User) -> IsAdminInfo:
    return IsAdminInfo(is_admin=is_admin(user))


# ---------- Invites ----------

def _create_user_rows(db: Session, email: str, is_admin_flag: bool) -> User:
    if db.get(User, email) is not None:
        raise UserAlreadyExistsError(f"User with email {email} already exists")

    user = User(
        email=email,
        hashed_password=hash_password(create_password()),
        role=UserRole.INIT,
    )
    db.add(user)
    db.flush()

    if not is_admin_flag:
        assign_submission(db, user)

    return user


def create_user(db: Session, email: str, is_admin: bool) -> User:
    """
    Create an INIT user (and its submission, for applicants) atomically.
    """
    email = normalize_email(email)
    with transaction(db):
        user = _create_user_rows(db, email, is_admin)
    logger.info("Created user %s admin=%s", email, is_admin)
    return user


def _invite_link(token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/invite/{token}"


def _invite_html(token: str, is_admin_flag: bool) -> str:
    days = settings.invite_link_expiration_days
    if is_admin_flag:
        return (
            "<p>Hello,<br><br>"
            "use the link below to register as an admin on the Coding Challenge platform.<br><br>"
            f'<a href="{_invite_link(token)}">Register now</a><br><br>'
            f"<b>The link expires after {days} days.</b></p>"
        )
    return (
        "<p>Dear applicant,<br><br>"
        "we are happy to invite you to your coding challenge.<br>"
        "Use the link below to register on our platform.<br><br>"
        f'<a href="{_invite_link(token)}">Register for the coding challenge</a><br><br>'
        f"<b>The link expires after {days} days.</b> Once registered you can view your task and have "
        f"<b>{settings.submission_expiration_days} days</b> to upload your solution.</p>"
    )


def _send_invite_email(email: str, token: str, is_admin_flag: bool) -> None:
    subject = ADMIN_INVITE_SUBJECT if is_admin_flag else USER_INVITE_SUBJECT
    text = (
        f"{subject}\n\nRegister here (valid for {settings.invite_link_expiration_days} days):\n"
        f"{_invite_link(token)}\n"
    )
    send_email(to_email=email, subject=subject, text_body=text, html_body=_invite_html(token, is_admin_flag))


def _issue_invite(db: Session, email: str, is_admin_flag: bool) -> str:
    token, expires_at = create_invite_token(email, is_admin_flag)
    invite_store.upsert(db, email, to_epoch_millis(expires_at))
    return token


def handle_invite(db: Session, email: str, is_admin: bool) -> UserInfo:
    validate_email(email)
    email = normalize_email(email)

    with transaction(db):
        user = _create_user_rows(db, email, is_admin)
        token = _issue_invite(db, email, is_admin)

    _send_invite_email(email, token, is_admin)
    logger.info("Invite sent to=%s admin=%s", email, is_admin)

    # Not registered until the invite link is used
    return UserInfo(email=user.email, is_admin=is_admin, status=UserStatus.UNREGISTERED)


def resend_invite(db: Session, email: str, is_admin: bool) -> UserInfo:
    user = _find_user(db, email)

    if extract_user_status(user) != UserStatus.UNREGISTERED:
        raise UserAlreadyRegisteredError(f"User with email {user.email} is already registered")

    # Applicants hold a submission from the first invite, admin invitees never do
    invited_as_admin = not fetch_submissions_for_user(db, user.email)
    if is_admin != invited_as_admin:
        kind = "an admin" if invited_as_admin else "an applicant"
        raise ConflictError(f"User with email {user.email} was invited as {kind} and must be re-invited as such")

    with transaction(db):
        token = _issue_invite(db, user.email, is_admin)

    _send_invite_email(user.email, token, is_admin)
    logger.info("Invite re-sent to=%s admin=%s", user.email, is_admin)
    return UserInfo(email=user.email, is_admin=is_admin, status=UserStatus.UNREGISTERED)


# ---------- Registration / passwords ----------

def _apply_password(user: User, password: str, is_admin_flag: bool) -> None:
    # Role is recomputed from the flag, never carried over
    user.role = role_for(is_admin_flag)
    user.hashed_password = hash_password(password)


def register(db: Session, token: str, password: str) -> User:
    """
    Complete registration with an invite token.

    The account's role is the idempotency gate: once it left INIT the same
    token is rejected whether or not an expiration record is still around.
    A tracked expiration newer than the token's own means a later invite
    superseded this link.
    """
    email, is_admin_flag, token_expiry_ms = decode_invite_token(token)
    user = _find_user(db, email)

    if is_registered(user):
        logger.warning("Rejected invite token reuse for %s", user.email)
        raise InvalidTokenError("Token was already used")

    tracked_ms = invite_store.get(db, user.email)
    if tracked_ms is not None and token_expiry_ms < tracked_ms:
        logger.warning("Rejected superseded invite token for %s", user.email)
        raise InvalidTokenError("Invite link was replaced by a newer one")

    target_role = role_for(is_admin_flag)
    validate_transition(UserRole(user.role), target_role)
    validate_password(password)

    with transaction(db):
        # Only an INIT row may be claimed; a concurrent registration that got
        # here first leaves nothing to update.
        result = db.execute(
            update(User)
            .where(User.email == user.email, User.role == UserRole.INIT)
            .values(role=target_role, hashed_password=hash_password(password))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning("Rejected concurrent invite token use for %s", user.email)
            raise InvalidTokenError("Token was already used")
        invite_store.delete(db, user.email)

    db.refresh(user)
    logger.info("User %s registered as %s", user.email, target_role.value)
    return user


def set_password(db: Session, email: str, password: str, is_admin: bool) -> User:
    user = _find_user(db, email)
    validate_password(password)

    with transaction(db):
        _apply_password(user, password, is_admin)
        db.add(user)
    return user


def request_password_change(db: Session, email: str) -> None:
    """
    Email a reset link. Unknown addresses get no email but the same outcome,
    so callers cannot discover which accounts exist.
    """
    validate_email(email)
    email = normalize_email(email)

    if db.get(User, email) is None:
        logger.info("Password reset requested for unknown email")
        return

    token = create_reset_token(email)
    link = f"{settings.frontend_url.rstrip('/')}/reset-password/{token}"
    minutes = settings.reset_password_expiration_minutes
    text = (
        "You have requested to reset your password for your Coding Challenge account.\n\n"
        f"Follow the link below to set a new password (valid for {minutes} minutes):\n{link}\n\n"
        "If you did not request this, you can ignore this email."
    )
    send_email(
        to_email=email,
        subject=RESET_PASSWORD_SUBJECT,
        text_body=text,
        html_body=f'<p>{text.splitlines()[0]}<br><br><a href="{link}">Reset password</a></p>',
    )
    logger.info("Password reset link sent to=%s", email)


def change_password(db: Session, token: str, new_password: str) -> None:
    with reset_password_token_guard.consume(db, token):
        email = get_claim_item(token, MAIL_KEY, RESET_TOKEN_TYPE)
        validate_email(email)
        user = _find_user(db, email)
        validate_password(new_password)

        user.hashed_password = hash_password(new_password)
        db.add(user)

    logger.info("Password changed via reset link for %s", email)


# ---------- Admin actions ----------

def delete_user(db: Session, email: str, current_email: Optional[str]) -> DeletedUserInfo:
    email = normalize_email(email)
    if current_email is not None and normalize_email(current_email) == email:
        raise UserSelfDeleteError(f"User with email {email} cannot delete themselves")

    with transaction(db):
        user = _find_user(db, email)
        for submission in fetch_submissions_for_user(db, email):
            db.delete(submission)
        db.flush()
        db.delete(user)
        invite_store.delete(db, email)
        info = DeletedUserInfo(email=user.email, is_admin=is_admin(user))

    logger.info("Deleted user %s", email)
    return info


def change_user_role(db: Session, email: str, new_role: UserRole) -> UserInfo:
    user = _find_user(db, email)
    current = UserRole(user.role)
    new_role = UserRole(new_role)

    if current == new_role:
        return _to_info(user)

    validate_transition(current, new_role, ROLE_CHANGE_TRANSITIONS)

    with transaction(db):
        user.role = new_role
        db.add(user)

    logger.info("Changed role of %s from %s to %s", user.email, current.value, new_role.value)
    return _to_info(user)
