"""
SnipShare Backend: FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() builds the long-lived collaborators
       (Database, password hasher, SessionStore, QuoteService), stores them
       on app.state, and registers middleware, exception handlers and
       routers.
Who:   uvicorn (`uvicorn snipshare.main:app`) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware Chain:                                           │
    │  RateLimit → RequestID → Logging → Session → GZip → CORS     │
    │                                                              │
    │  Routes:                                                     │
    │  ┌──────────────┐ ┌──────────────────┐ ┌──────────────────┐  │
    │  │ HTML pages   │ │ JSON API (/api)  │ │ GET /health      │  │
    │  └──────────────┘ └──────────────────┘ └──────────────────┘  │
    │                                                              │
    │  app.state: settings, database, pwd_context,                 │
    │             session_store, quote_service                     │
    │                                                              │
    │  Exception Handlers (JSON for /api + /health, HTML otherwise)│
    │  Validation/Conflict→400 │ Auth→401 │ NotFound→404 │ Store→500│
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Check security-sensitive settings (logged, not fatal)
    3. Create tables if DB_CREATE_SCHEMA is true

    Shutdown:
    1. Dispose the database engine
    2. Close the quote API HTTP client
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from snipshare import __version__
from snipshare.config import Settings, settings as default_settings
from snipshare.database import Database
from snipshare.exceptions import (
    AuthError,
    ConflictError,
    IdentityError,
    NotFoundError,
    RateLimitExceededError,
    SnipShareError,
    StoreError,
    ValidationError,
)
from snipshare.logging_config import setup_logging
from snipshare.middleware.logging import RequestLoggingMiddleware
from snipshare.middleware.rate_limit import RateLimitMiddleware
from snipshare.middleware.request_id import RequestIDMiddleware, request_id_var
from snipshare.middleware.session import SessionMiddleware
from snipshare.routes import api, health, pages
from snipshare.schemas.common import FieldError
from snipshare.security import create_password_context
from snipshare.services.quote_service import QuoteService
from snipshare.services.session_store import SessionStore
from snipshare.templating import STATIC_DIR, templates

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app_settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(app_settings.log_level)
    logger.info("=" * 60)
    logger.info("SnipShare %s starting up...", __version__)

    try:
        app_settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: a weak bcrypt cost still works, it is just cheaper to attack.
        logger.error("Configuration error: %s", str(e))

    if app_settings.db_create_schema:
        await app.state.database.create_schema()

    logger.info("Server ready at http://%s:%d", app_settings.backend_host, app_settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("SnipShare shutting down...")
    await app.state.database.dispose()
    await app.state.quote_service.aclose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _wants_json(request: Request) -> bool:
    path = request.url.path
    return path.startswith("/api") or path.startswith("/health")


def error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    errors: Optional[List[FieldError]] = None,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Response:
    """
    Build the error body for either adapter.

    JSON shape: {"error", "message", "errors"?, "details"?, "request_id"}.
    Pages get error.html with the same message.
    """
    rid = request_id_var.get("")
    if _wants_json(request):
        content: Dict[str, Any] = {"error": error, "message": message, "request_id": rid}
        if errors:
            content["errors"] = [e.model_dump() for e in errors]
        if details:
            content["details"] = details
        return JSONResponse(status_code=status_code, content=content, headers=headers)

    return templates.TemplateResponse(
        request,
        "error.html",
        {
            "status_code": status_code,
            "message": message,
            "errors": errors or [],
            "request_id": rid,
            "current_user": None,
            "flashes": [],
        },
        status_code=status_code,
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to status codes.

    Handler hierarchy:
        ValidationError / RequestValidationError → 400 validation_error
        ConflictError                            → 400 conflict
        AuthError                                → 401 invalid_credentials
        IdentityError                            → 401 not_authenticated
        NotFoundError / unknown route            → 404 not_found
        RateLimitExceededError                   → 429 rate_limit_exceeded
        StoreError                               → 500 server_error
        SnipShareError (base)                    → 500 server_error
        Exception (fallback)                     → 500 internal_server_error

    Security: responses never carry stack traces, SQL or the reason a login
    failed. Those go to the server log.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.info("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return error_response(request, 400, "validation_error", exc.message, errors=exc.errors)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """Malformed JSON, wrong types or bad path parameters: 400 with field errors."""
        errors = []
        for err in exc.errors():
            loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "form")]
            errors.append(FieldError(field=".".join(loc) or "body", message=err.get("msg", "Invalid value")))
        return error_response(request, 400, "validation_error", "Request is invalid", errors=errors)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return error_response(request, 400, "conflict", exc.message)

    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        # The specific reason is logged; the client only learns that it failed.
        logger.info("[%s] Authentication declined: %s", request_id_var.get(""), exc.message)
        return error_response(request, 401, "invalid_credentials", "Invalid credentials")

    @app.exception_handler(IdentityError)
    async def handle_identity_error(request: Request, exc: IdentityError):
        return error_response(request, 401, "not_authenticated", "You are not logged in")

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return error_response(request, 404, "not_found", exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        error = "not_found" if exc.status_code == 404 else "http_error"
        return error_response(request, exc.status_code, error, str(exc.detail), headers=exc.headers)

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return error_response(
            request,
            429,
            "rate_limit_exceeded",
            exc.message,
            details={"retry_after": exc.retry_after},
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError):
        logger.error("[%s] Store error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return error_response(
            request, 500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(SnipShareError)
    async def handle_app_error(request: Request, exc: SnipShareError):
        logger.error(
            "[%s] Unhandled %s: %s | Context: %s",
            request_id_var.get(""),
            type(exc).__name__,
            exc.message,
            exc.context,
        )
        return error_response(
            request, 500, "server_error", "An internal error occurred. Please try again later."
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return error_response(
            request,
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again later.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Explicit configuration; defaults to the environment-loaded
            `snipshare.config.settings`. Tests pass their own.

    The Database, SessionStore and QuoteService are created here rather than
    in the lifespan, so an app driven without lifespan events (httpx's
    ASGITransport in tests) still has them.
    """
    settings = settings or default_settings

    app = FastAPI(
        title="SnipShare",
        description=(
            "Share and search code snippets. Server-rendered pages plus a JSON API "
            "under /api with session-cookie authentication."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Long-lived collaborators ──────────────────────────────────────────
    app.state.settings = settings
    app.state.database = Database.from_settings(settings)
    app.state.pwd_context = create_password_context(settings.bcrypt_rounds)
    app.state.session_store = SessionStore(ttl_seconds=settings.session_ttl_seconds)
    app.state.quote_service = QuoteService(settings)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first, so this order executes as:
    # RateLimit → RequestID → Logging → Session → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        SessionMiddleware,
        store=app.state.session_store,
        cookie_name=settings.session_cookie_name,
        secure=settings.session_cookie_secure,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window,
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
    app.include_router(pages.router)
    app.include_router(api.router)
    app.include_router(health.router)

    return app


# uvicorn expects `snipshare.main:app` to be importable.
app = create_app()
