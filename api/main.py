"""
api/main.py -- FastAPI application entry point for Postboard.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Lifespan builds the AppContext (settings, shared engine, stores) on startup,
runs one owned-post consistency pass, starts the periodic reconcile task, and
tears everything down symmetrically on shutdown.

Error rendering lives here, in one place. Every handler picks the response
shape with auth.dependencies.wants_html(): browsers get a redirect or a plain
text message, API callers get the ErrorResponse JSON envelope.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.dependencies import AuthenticationRequired, wants_html
from auth.tokens import clear_auth_cookie
from core.config import get_settings
from core.errors import AppError
from social import service
from social.context import AppContext

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("postboard.api")

# ---------------------------------------------------------------------------
# Background reconcile task
# ---------------------------------------------------------------------------


async def _reconcile_loop(ctx: AppContext, interval: int) -> None:
    """Re-run the owned-post consistency check every `interval` seconds.

    The check is a blocking transaction, so it runs in a worker thread. A
    failed pass (e.g. "database is locked") is logged and retried on the next
    tick instead of ending the task. CancelledError from task.cancel() during
    shutdown propagates out of asyncio.sleep and unwinds the coroutine cleanly.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(service.reconcile_owned_posts, ctx)
        except Exception:
            logger.exception("Owned-post reconcile pass failed")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order matters: the context must exist before the consistency pass
    and the periodic task reference it.
    """
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info("Postboard starting up")

    ctx = AppContext.from_settings(settings)
    settings.uploads_dir.mkdir(parents=True, exist_ok=True)
    app.state.ctx = ctx
    repaired = service.reconcile_owned_posts(ctx)
    logger.info("Database ready (%d owned-post entries repaired)", repaired)

    reconcile_task = None
    if settings.reconcile_interval_seconds > 0:
        reconcile_task = asyncio.create_task(_reconcile_loop(ctx, settings.reconcile_interval_seconds))

    yield

    if reconcile_task is not None:
        reconcile_task.cancel()
    ctx.close()
    logger.info("Postboard shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Postboard",
    description="A small social board: accounts, a global feed, profiles, and likes.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
# Web UI router is mounted by asgi.py, not here.


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _error_response(request: Request, status_code: int, code: str, message: str, detail: str | None = None) -> Response:
    if wants_html(request):
        return PlainTextResponse(message, status_code=status_code)
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AuthenticationRequired)
async def authentication_required_handler(request: Request, exc: AuthenticationRequired) -> Response:
    """Send browsers to /login and give API callers a 401; drop a bad cookie either way."""
    if wants_html(request):
        response: Response = RedirectResponse("/login", status_code=302)
    else:
        response = _error_response(request, 401, "unauthorized", "Authentication required.")
    if exc.clear_cookie:
        clear_auth_cookie(response, request.app.state.ctx.settings)
    return response


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> Response:
    return _error_response(request, exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    """Return 422 when path or query parameters fail validation."""
    return _error_response(request, 422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    return _error_response(request, exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Catch-all for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(request, 500, "internal_error", "Server error.")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, and a database round-trip check."""
    try:
        database = "ok" if request.app.state.ctx.users.ping() else "error"
    except Exception:
        logger.warning("Health check database ping failed", exc_info=True)
        database = "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
