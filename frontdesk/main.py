import time
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .announcements_api import router as announcements_router
from .api import router
from .auth_api import router as auth_router
from .config import settings
from .db import SessionLocal, init_db
from .logging_config import setup_logging
from .manager_api import router as manager_router
from .packages_api import router as packages_router
from .scheduler import shutdown_scheduler, start_scheduler

APP_VERSION = "1.0.0"

log = structlog.get_logger("frontdesk.http")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    if bool(settings.DB_AUTO_CREATE_ALL):
        init_db()
    if bool(settings.SCHEDULER_ENABLED):
        start_scheduler()
    try:
        yield
    finally:
        if bool(settings.SCHEDULER_ENABLED):
            shutdown_scheduler()


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "loc": [str(part) for part in err.get("loc", ())],
            "msg": str(err.get("msg", "")),
            "type": str(err.get("type", "")),
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "Invalid request data", "errors": errors})


async def request_logging_middleware(request: Request, call_next):
    request_id = (request.headers.get("x-request-id") or "").strip() or str(uuid.uuid4())
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    start = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception as exc:
        duration_ms = round((time.perf_counter() - start) * 1000.0, 2)
        log.error(
            "http_request",
            method=request.method,
            path=request.url.path,
            status_code=500,
            duration_ms=duration_ms,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"}, headers={"X-Request-ID": request_id})

    duration_ms = round((time.perf_counter() - start) * 1000.0, 2)
    log.info(
        "http_request",
        method=request.method,
        path=request.url.path,
        status_code=int(response.status_code),
        duration_ms=duration_ms,
    )
    response.headers["X-Request-ID"] = request_id
    return response


async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    if bool(settings.SECURITY_HEADERS_ENABLED):
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Permissions-Policy", "camera=(), microphone=(), geolocation=()")
        response.headers.setdefault("Cache-Control", "no-store")
    return response


def create_app() -> FastAPI:
    app = FastAPI(
        title="Front Desk Reports",
        description="Shift reporting for residential front desks",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    # Registered last so it wraps everything else.
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_logging_middleware)

    @app.get("/ping")
    def ping():
        return {"ok": True}

    @app.get("/health")
    def health():
        try:
            with SessionLocal() as db:
                db.execute(text("SELECT 1"))
        except Exception:
            return JSONResponse(status_code=503, content={"status": "not_ready", "checks": {"db": "error"}})
        return {"status": "ok", "checks": {"db": "ok"}}

    app.include_router(auth_router)
    app.include_router(router)
    app.include_router(packages_router)
    app.include_router(manager_router)
    app.include_router(announcements_router)
    return app


app = create_app()
