"""
NoteFlow Backend — FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers;
       `app` is the module-level instance uvicorn serves
       (uvicorn noteflow.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware: Auth Rate Limit → Request ID → Access Log       │
    │              → GZip → CORS                                   │
    │                                                              │
    │  Routers (/api): auth · notes · payments · comments          │
    │                  likes · bookmarks                           │
    │                                                              │
    │  Exception Handlers → {success: false, message, errors?}     │
    │    ValidationError / ConflictError / bad input → 400         │
    │    AuthenticationError → 401   AuthorizationError → 403      │
    │    NotFoundError / unknown route → 404                       │
    │    RateLimitExceededError → 429   anything else → 500        │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, startup banner
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from noteflow.config import settings
from noteflow.database import dispose_engine
from noteflow.exceptions import (
    DatabaseError,
    NoteFlowError,
    RateLimitExceededError,
    ValidationError,
)
from noteflow.middleware.logging import RequestLoggingMiddleware
from noteflow.middleware.rate_limit import RateLimitMiddleware
from noteflow.middleware.request_id import RequestIDMiddleware, request_id_var
from noteflow.routes import auth, bookmarks, comments, likes, notes, payments

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    Format: 2024-01-15T12:00:00 [INFO] noteflow.services.payment_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers are noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("NoteFlow Backend starting up (env=%s)...", settings.app_env)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("NoteFlow Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _envelope(message: str, errors: List[Dict[str, Any]] | None = None, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update(extra)
    return body


def _format_validation_errors(exc: RequestValidationError) -> List[Dict[str, Any]]:
    """Flattens FastAPI/Pydantic errors into [{field, location, message}]."""
    formatted = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        location = loc[0] if loc else None
        field = ".".join(loc[1:]) or location or "request"
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        formatted.append({"field": field, "location": location, "message": message})
    return formatted


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps exceptions to the error envelope.

    Handlers never put stack traces, SQL or exception context into the
    response body; those go to the server log. The catch-all handler adds
    the exception text as `error` outside production.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        errors = _format_validation_errors(exc)
        logger.info("[%s] Request validation failed: %s", rid, errors)
        return JSONResponse(status_code=400, content=_envelope("Validation failed", errors))

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.info("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(status_code=exc.status_code, content=_envelope(exc.message, exc.errors))

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_envelope(exc.message),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=500, content=_envelope(exc.message))

    @app.exception_handler(NoteFlowError)
    async def handle_app_error(request: Request, exc: NoteFlowError):
        """Authentication, authorization, not-found and conflict errors."""
        rid = request_id_var.get("")
        log_level = logging.ERROR if exc.status_code >= 500 else logging.INFO
        logger.log(
            log_level,
            "[%s] %s (%d): %s | Context: %s",
            rid, type(exc).__name__, exc.status_code, exc.message, exc.context,
        )
        return JSONResponse(status_code=exc.status_code, content=_envelope(exc.message))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = "Route not found"
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content=_envelope(message),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        extra = {} if settings.is_production else {"error": str(exc)}
        return JSONResponse(
            status_code=500,
            content=_envelope("Internal server error", **extra),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="NoteFlow API",
        description=(
            "Note-sharing marketplace: creators publish study notes, viewers "
            "browse, purchase, comment on, like and bookmark them."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in reverse order of addition
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    for module in (auth, notes, payments, comments, likes, bookmarks):
        app.include_router(module.router)

    return app


app = create_app()
