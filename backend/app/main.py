from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from psycopg import errors as pg_errors
import time
import uuid
from datetime import datetime, timezone
from .routers.auth import router as auth_router
from .routers.orders import router as orders_router
from .routers.invoices import router as invoices_router
from .routers.notifications import router as notifications_router
from .routers.products import router as products_router
from .config import settings
from .db import get_admin_conn, close_pools
from .logs import json_log
from .security import AuthConfig

app = FastAPI(title="Triact POS API", version=settings.api_version)
STARTED_AT_UTC = datetime.now(timezone.utc)


def _current_request_id(req: Request) -> str:
    return getattr(req.state, "request_id", "") or req.headers.get("x-request-id") or "startup"


# Map common DB constraint/cast errors to 4xx so clients get actionable responses
# instead of generic 500s.
@app.exception_handler(pg_errors.InvalidTextRepresentation)
def _invalid_text_representation(_req: Request, exc: Exception):
    # e.g. malformed uuid in a filter
    content = {"detail": "invalid value"}
    if settings.env in {"local", "dev"}:
        content["error"] = str(exc)
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(pg_errors.ForeignKeyViolation)
def _foreign_key_violation(_req: Request, exc: Exception):
    content = {"detail": "invalid reference"}
    if settings.env in {"local", "dev"}:
        content["error"] = str(exc)
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(pg_errors.UniqueViolation)
def _unique_violation(_req: Request, exc: Exception):
    content = {"detail": "conflict"}
    if settings.env in {"local", "dev"}:
        content["error"] = str(exc)
    return JSONResponse(status_code=409, content=content)


@app.exception_handler(pg_errors.CheckViolation)
def _check_violation(_req: Request, exc: Exception):
    # products.stock >= 0 lands here if a decrement ever slips past the guarded UPDATE.
    content = {"detail": "constraint violation"}
    if settings.env in {"local", "dev"}:
        content["error"] = str(exc)
    return JSONResponse(status_code=400, content=content)


@app.exception_handler(pg_errors.LockNotAvailable)
@app.exception_handler(pg_errors.QueryCanceled)
def _db_timeout(req: Request, exc: Exception):
    # lock_timeout / statement_timeout: the transaction was rolled back.
    json_log("warning", "http.request.db_timeout", request_id=_current_request_id(req), path=req.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": "database busy, nothing was saved"})


@app.exception_handler(RequestValidationError)
def _request_validation_error(_req: Request, exc: Exception):
    content = {"detail": "validation failed"}
    if settings.env in {"local", "dev"} and hasattr(exc, "errors"):
        content["errors"] = exc.errors()
    return JSONResponse(status_code=422, content=content)


@app.exception_handler(Exception)
def _unhandled_exception(req: Request, exc: Exception):
    rid = _current_request_id(req)
    json_log(
        "error",
        "http.request.unhandled",
        request_id=rid,
        method=req.method,
        path=req.url.path,
        error=str(exc),
    )
    content = {"detail": "internal error", "request_id": rid}
    if settings.env in {"local", "dev"}:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)

# Correlation id + basic structured request logging.
@app.middleware("http")
async def _request_logging(request: Request, call_next):
    rid = (request.headers.get("X-Request-Id") or "").strip() or uuid.uuid4().hex
    request.state.request_id = rid
    started = time.time()
    path = request.url.path
    method = request.method
    client_ip = (request.client.host if request.client else None)

    try:
        response = await call_next(request)
    except Exception as exc:
        dur_ms = int((time.time() - started) * 1000)
        json_log(
            "error",
            "http.request.error",
            request_id=rid,
            method=method,
            path=path,
            client_ip=client_ip,
            duration_ms=dur_ms,
            error=str(exc),
        )
        raise

    response.headers["X-Request-Id"] = rid
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if not path.startswith("/health"):
        dur_ms = int((time.time() - started) * 1000)
        json_log(
            "info",
            "http.request",
            request_id=rid,
            method=method,
            path=path,
            status_code=response.status_code,
            client_ip=client_ip,
            duration_ms=dur_ms,
        )
    return response

# The single CORS policy for the API. Preflight (OPTIONS) is answered here, before auth.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Request-Id", "X-Requested-With", "Accept"],
    expose_headers=["X-Request-Id"],
)
app.include_router(auth_router)
# Shop routes guard themselves per endpoint (token shop must match the path shop).
app.include_router(orders_router)
app.include_router(invoices_router)
app.include_router(notifications_router)
app.include_router(products_router)

@app.on_event("startup")
def _startup():
    # Fail fast: a missing signing secret must stop the process, not 500 every request.
    app.state.auth_config = AuthConfig.from_env()
    ok, err = _db_health()
    if ok:
        json_log("info", "startup.db_connected", env=settings.env, version=settings.api_version)
    else:
        json_log("warning", "startup.db_probe_failed", env=settings.env, error=err)

@app.on_event("shutdown")
def _shutdown():
    close_pools()


SERVICE_NAME = "triact-backend"


def _db_health():
    try:
        with get_admin_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 AS ok")
                cur.fetchone()
        return True, None
    except Exception as exc:
        return False, str(exc)


def _db_status(req: Request, ready_status: str):
    # /health and /health/ready share one shape; a DB outage is a 503 for load balancers.
    ok, err = _db_health()
    content = {
        "status": ready_status if ok else "degraded",
        "db": "ok" if ok else "down",
        "env": settings.env,
        "service": SERVICE_NAME,
        "version": settings.api_version,
        "request_id": _current_request_id(req),
    }
    if ok:
        return content
    if settings.env in {"local", "dev"}:
        content["error"] = err
    return JSONResponse(status_code=503, content=content)


@app.get("/health")
def health(req: Request):
    return _db_status(req, "ok")


@app.get("/health/live")
def health_live(req: Request):
    return {"status": "ok", "service": SERVICE_NAME, "request_id": _current_request_id(req)}


@app.get("/health/ready")
def health_ready(req: Request):
    return _db_status(req, "ready")


@app.get("/meta")
def meta():
    return {
        "service": SERVICE_NAME,
        "version": settings.api_version,
        "env": settings.env,
        "uptime_seconds": int((datetime.now(timezone.utc) - STARTED_AT_UTC).total_seconds()),
        "started_at": STARTED_AT_UTC.isoformat(),
    }
