# backend/app/core/errors.py

from __future__ import annotations

import logging
from typing import Optional

from app.core.request_context import get_request_id


class AppError(Exception):
    """
    Base class for every domain failure raised by the services.

    Each subclass carries a stable machine-readable `code` and the HTTP status
    the API layer maps it onto (see the AppError handler in app.main).
    """

    code = "APP_ERROR"
    status_code = 400

    def __init__(self, message: str = "Request failed.", *, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


# --- NotFound ---

class ResourceNotFoundError(AppError):
    code = "RESOURCE_NOT_FOUND"
    status_code = 404


# --- Conflict ---

class ConflictError(AppError):
    code = "CONFLICT"
    status_code = 409


class UserAlreadyExistsError(ConflictError):
    code = "USER_ALREADY_EXISTS"


class UserAlreadyRegisteredError(ConflictError):
    code = "USER_ALREADY_REGISTERED"


class SubmissionStateError(ConflictError):
    code = "INVALID_SUBMISSION_STATE"


class RoleTransitionError(ConflictError):
    code = "INVALID_ROLE_TRANSITION"


# --- InvalidToken ---

class InvalidTokenError(AppError):
    code = "INVALID_TOKEN"
    status_code = 400


class TokenAlreadyUsedError(InvalidTokenError):
    code = "TOKEN_USED"
    status_code = 409


# --- Unauthorized ---

class UnauthorizedError(AppError):
    code = "UNAUTHORIZED"
    status_code = 401


class ForbiddenError(UnauthorizedError):
    code = "FORBIDDEN"
    status_code = 403


class UserSelfDeleteError(ForbiddenError):
    code = "USER_SELF_DELETE"


# --- ValidationFailure ---

class ValidationFailureError(AppError):
    code = "VALIDATION_FAILED"
    status_code = 400


class WeakPasswordError(ValidationFailureError):
    code = "WEAK_PASSWORD"


class InvalidEmailError(ValidationFailureError):
    code = "INVALID_EMAIL"


# --- Fatal ---

class NoActiveProjectError(AppError):
    """
    No project is active, so a non-admin invite cannot be given a submission.
    Retrying the same request will not help until an admin activates a project.
    """

    code = "NO_ACTIVE_PROJECT"
    status_code = 503


class RequestIdFilter(logging.Filter):
    """
    Injects request_id into every LogRecord as `record.request_id`.
    Safe in non-request contexts (falls back to "-").
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _safe_request_id()
        return True


def install_request_id_logging(
    logger_name: str = "codingchallenge",
    *,
    include_root: bool = True,
) -> None:
    """
    Attach RequestIdFilter so logs can include %(request_id)s in the formatter.
    Call once during startup, right after logging.basicConfig().
    """
    filt = RequestIdFilter()

    if include_root:
        logging.getLogger().addFilter(filt)

    logging.getLogger(logger_name).addFilter(filt)


def _safe_request_id() -> str:
    try:
        return get_request_id() or "-"
    except LookupError:
        return "-"
