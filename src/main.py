"""LC Credit Ledger - FastAPI Application."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api import register_routers
from src.core.config import get_settings
from src.core.exceptions import CreditError, InvalidAmountError, ValidationError
from src.db import close_db, init_db

logger = logging.getLogger(__name__)

# Request fields whose validation failures are reported as INVALID_AMOUNT
AMOUNT_FIELDS = frozenset({"amount", "amount_requested", "amount_override"})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup: Initialize database tables
    Shutdown: Close database connections
    """
    await init_db()
    yield
    await close_db()


def error_response(exc: CreditError) -> JSONResponse:
    """Render a ledger error as ``{"error", "code"}`` (plus details if any)."""
    content = {"error": exc.message, "code": exc.code}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


async def credit_error_handler(request: Request, exc: CreditError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render FastAPI body/query validation errors in the ledger error shape."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = str(first.get("loc", ("",))[-1])
    if field in AMOUNT_FIELDS:
        return error_response(InvalidAmountError(message=f"Invalid {field}"))
    message = f"{field}: {first.get('msg', 'invalid value')}" if field else "Invalid request"
    return error_response(ValidationError(message))


def create_app() -> FastAPI:
    """Application factory.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Two-pool community credit ledger API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CreditError, credit_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    register_routers(app)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


# Application instance
app = create_app()
