# backend/app/api/v1/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.rate_limit import login_rate_limit, password_reset_rate_limit
from app.core.security import authenticate_user, get_current_user
from app.db.session import get_db
from app.models import User
from app.services import users as user_service
from app.services.tokens import create_access_token

logger = logging.getLogger("codingchallenge")

router = APIRouter(prefix="/auth", tags=["auth"])


# === Schemas ===

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class RegisterIn(BaseModel):
    token: str = Field(..., min_length=10, max_length=2048)
    password: str = Field(..., min_length=1, max_length=256)


class PasswordChangeRequestIn(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)


class ChangePasswordIn(BaseModel):
    token: str = Field(..., min_length=10, max_length=2048)
    new_password: str = Field(..., min_length=1, max_length=256)


class DetailOut(BaseModel):
    detail: str


# === Session helpers ===

def _start_session(response: Response, email: str) -> Token:
    """Issue a session token and set it as an httponly cookie."""
    access_token = create_access_token(email)
    response.set_cookie(
        key=settings.session_cookie_name,
        value=access_token,
        httponly=True,
        secure=settings.is_prod,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
    )
    return Token(access_token=access_token)


# === Routes ===

@router.post("/login", response_model=Token, dependencies=[Depends(login_rate_limit)])
def login(
    response: Response,
    form: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> Token:
    user = authenticate_user(db, form.username, form.password)
    logger.info("Login ok email=%s", user.email)
    return _start_session(response, user.email)


@router.post("/logout", response_model=DetailOut)
def logout(response: Response) -> DetailOut:
    response.delete_cookie(settings.session_cookie_name, path="/")
    return DetailOut(detail="Logged out.")


@router.post("/register", response_model=Token, dependencies=[Depends(login_rate_limit)])
def register(payload: RegisterIn, response: Response, db: Session = Depends(get_db)) -> Token:
    """
    Complete an invite: set the password and log the new account in.
    """
    user = user_service.register(db, payload.token, payload.password)
    authenticated = authenticate_user(db, user.email, payload.password)
    return _start_session(response, authenticated.email)


@router.get("/check-admin", response_model=user_service.IsAdminInfo)
def check_admin(current_user: User = Depends(get_current_user)) -> user_service.IsAdminInfo:
    return user_service.fetch_admin_status(current_user)


@router.post(
    "/password/request",
    response_model=DetailOut,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(password_reset_rate_limit)],
)
def request_password_change(payload: PasswordChangeRequestIn, db: Session = Depends(get_db)) -> DetailOut:
    user_service.request_password_change(db, payload.email)
    # Same answer for known and unknown addresses
    return DetailOut(detail="If the email exists, a password reset link has been sent.")


@router.post(
    "/password/change",
    response_model=DetailOut,
    dependencies=[Depends(password_reset_rate_limit)],
)
def change_password(payload: ChangePasswordIn, db: Session = Depends(get_db)) -> DetailOut:
    user_service.change_password(db, payload.token, payload.new_password)
    return DetailOut(detail="Password updated. You can now sign in.")
