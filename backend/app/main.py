# backend/app/main.py

import logging
import time
import uuid
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from app.core.config import settings
from app.core.errors import AppError, install_request_id_logging
from app.core.request_context import (
    get_db_metrics_snapshot,
    get_request_id,
    reset_db_metrics,
    set_request_id,
)

# --- Logging setup ---
# LogRecordFactory runs for every record, so %(request_id)s never raises
# KeyError even for third-party loggers that bypass our filter.
_old_factory = logging.getLogRecordFactory()


def _record_factory(*args, **kwargs):
    record = _old_factory(*args, **kwargs)
    if not hasattr(record, "request_id"):
        record.request_id = "-"
    return record


logging.setLogRecordFactory(_record_factory)

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s %(name)s request_id=%(request_id)s %(message)s",
)
install_request_id_logging()

logger = logging.getLogger("codingchallenge")

enable_docs = settings.enable_docs
logger.info("Startup: environment=%s enable_docs=%s", settings.environment, enable_docs)
logger.info("DB backend detected: %s", (settings.database_url or "").split(":", 1)[0] or "unknown")

SLOW_HTTP_MS = 1500

app = FastAPI(
    title="Coding Challenge API",
    openapi_url="/api/v1/openapi.json" if enable_docs else None,
    docs_url="/api/v1/docs" if enable_docs else None,
    redoc_url="/api/v1/redoc" if enable_docs else None,
)


def _get_request_id(request: Request) -> str:
    """
    Use an incoming request id if present (proxies), otherwise generate one.
    """
    incoming = request.headers.get("x-request-id") or request.headers.get("x-correlation-id")
    if incoming and incoming.strip():
        return incoming.strip()[:128]
    return uuid.uuid4().hex


def _rid_from_request(request: Request) -> str:
    rid = getattr(request.state, "request_id", None)
    if isinstance(rid, str) and rid.strip():
        return rid
    rid = get_request_id()
    if rid and rid != "-":
        return rid
    return uuid.uuid4().hex


def _error_payload(code: str, message: str, request_id: str, extra: Optional[dict] = None) -> dict:
    """
    Standardized error contract:
    - code/message/request_id at the top level
    - detail mirrors code/message for older frontend parsing
    """
    payload: dict[str, Any] = {
        "code": code,
        "message": message,
        "request_id": request_id,
        "detail": {"code": code, "message": message},
    }
    if extra:
        payload.update(extra)
    return payload


def _http_exception_payload(exc: HTTPException, *, request_id: str) -> dict:
    """
    Structured payload for HTTPException. A dict detail is merged into
    payload["detail"] so structured fields reach the client.
    """
    code = f"HTTP_{exc.status_code}"

    if isinstance(exc.detail, dict):
        msg = exc.detail.get("message")
        if not isinstance(msg, str) or not msg.strip():
            msg = "Request failed."

        merged_detail: dict[str, Any] = {"code": code, "message": msg}
        merged_detail.update(exc.detail)

        return _error_payload(code=code, message=msg, request_id=request_id, extra={"detail": merged_detail})

    msg = exc.detail if isinstance(exc.detail, str) else "Request failed."
    return _error_payload(code=code, message=msg, request_id=request_id)


# --- Exception handlers (standardized error contract) ---
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    request_id = _rid_from_request(request)

    log_fn = logger.error if exc.status_code >= 500 else logger.info
    log_fn(
        "app_error code=%s status=%s method=%s path=%s message=%s",
        exc.code,
        exc.status_code,
        request.method,
        request.url.path,
        exc.message,
    )

    resp = JSONResponse(
        status_code=exc.status_code,
        content=_error_payload(code=exc.code, message=exc.message, request_id=request_id),
    )
    resp.headers["X-Request-ID"] = request_id
    return resp


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    request_id = _rid_from_request(request)
    resp = JSONResponse(
        status_code=exc.status_code,
        content=_http_exception_payload(exc, request_id=request_id),
    )
    resp.headers["X-Request-ID"] = request_id
    return resp


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = _rid_from_request(request)
    resp = JSONResponse(
        status_code=422,
        content=_error_payload(
            code="VALIDATION_ERROR",
            message="Validation error. Check request body/query parameters.",
            request_id=request_id,
            extra={"errors": exc.errors()},
        ),
    )
    resp.headers["X-Request-ID"] = request_id
    return resp


# --- Observability middleware: request id + timing + structured logs ---
@app.middleware("http")
async def request_observability(request: Request, call_next):
    request_id = _get_request_id(request)
    request.state.request_id = request_id
    set_request_id(request_id)
    reset_db_metrics()

    start = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-ID"] = request_id
        return response

    except Exception as e:
        logger.exception(
            "Unhandled error method=%s path=%s error=%s",
            request.method,
            request.url.path,
            str(e),
        )
        resp = JSONResponse(
            status_code=500,
            content=_error_payload(code="INTERNAL_ERROR", message="Internal Server Error", request_id=request_id),
        )
        resp.headers["X-Request-ID"] = request_id
        return resp

    finally:
        duration_ms = (time.perf_counter() - start) * 1000.0
        m = get_db_metrics_snapshot()
        log_fn = logger.warning if duration_ms >= SLOW_HTTP_MS else logger.info
        log_fn(
            "req request_id=%s method=%s path=%s status=%s duration_ms=%.2f db_total_ms=%.2f db_q=%s",
            request_id,
            request.method,
            request.url.path,
            status_code,
            duration_ms,
            m["db_total_ms"],
            m["db_query_count"],
        )
        set_request_id(None)


# --- CORS setup ---
allowed = settings.origins_list()
logger.info("CORS allow_origins=%s", allowed)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include routers (after app creation) ---
from app.api.v1 import admin, auth, health  # noqa: E402

app.include_router(auth.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")
app.include_router(health.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
def root():
    if enable_docs:
        return RedirectResponse(url="/api/v1/docs")
    return {"status": "Coding Challenge API is running. See /api/v1/health."}
