"""
SynthAI - FastAPI Application

Main entry point for the backend API.
Provides endpoints for subscriptions, the gated chat and tools,
conversation history and PayPal/Stripe billing.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.routes import chats, conversations, paypal, subscriptions, webhooks
from app.config.settings import Settings, get_settings
from app.domain.access import DenyReason
from app.infrastructure.ai.gemini_service import GeminiService
from app.infrastructure.auth.session_tokens import SessionTokenVerifier
from app.infrastructure.db.database import DatabaseManager
from app.infrastructure.exceptions import (
    AccessDeniedError,
    ConfigurationError,
    DatabaseError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from app.infrastructure.payments import PayPalService, StripeService


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    settings: Settings = app.state.settings
    db: DatabaseManager = app.state.db

    # Startup
    logger.info(f"SynthAI Backend starting in {settings.environment} mode...")
    await db.connect()
    if settings.database_auto_create or db.is_sqlite:
        await db.create_tables()
        logger.info("Database tables ensured")

    yield

    # Shutdown
    await db.close()
    logger.info("SynthAI Backend shutting down...")


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain exceptions to HTTP responses."""

    @app.exception_handler(AccessDeniedError)
    async def access_denied_handler(request: Request, exc: AccessDeniedError):
        """401 for missing credentials, 403 for entitlement denials."""
        headers = None
        if exc.reason == DenyReason.UNAUTHENTICATED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers=headers,
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        """Handle validation errors."""
        return JSONResponse(
            status_code=400,
            content=exc.to_dict(),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed request bodies are client errors (400)."""
        return JSONResponse(
            status_code=400,
            content={
                "error": "ValidationError",
                "message": "Invalid request",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(NotFoundError)
    async def not_found_error_handler(request: Request, exc: NotFoundError):
        """Handle not found errors."""
        return JSONResponse(
            status_code=404,
            content=exc.to_dict(),
        )

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(request: Request, exc: UpstreamError):
        """Billing, LLM and database failures: log the detail, return a generic message."""
        logger.error(
            f"{exc.__class__.__name__} on {request.method} {request.url.path}: "
            f"{exc.message} {exc.details}",
            exc_info=exc.original_error,
        )
        return JSONResponse(
            status_code=500,
            content={"error": exc.public_message},
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        logger.error(f"Configuration error: {exc.message} {exc.details}")
        return JSONResponse(
            status_code=500,
            content={"error": "Service is not configured"},
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception(f"Database error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"error": DatabaseError.public_message},
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application and its collaborators.

    Args:
        settings: Explicit settings (tests); defaults to the environment
    """
    settings = settings or get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    app = FastAPI(
        title=settings.app_name,
        description="AI content generation with a metered free tier and paid subscriptions",
        version="1.0.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.state.settings = settings
    app.state.db = DatabaseManager(settings)
    app.state.token_verifier = SessionTokenVerifier(settings)
    app.state.llm = GeminiService(settings)
    app.state.paypal = PayPalService(settings)
    app.state.stripe = StripeService(settings)

    # CORS configuration from Settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions"])
    app.include_router(chats.router, prefix="/api", tags=["Chat & Tools"])
    app.include_router(conversations.router, prefix="/api", tags=["Conversations"])
    app.include_router(paypal.router, prefix="/api", tags=["PayPal"])
    app.include_router(paypal.orders_router, prefix="/api", tags=["PayPal"])
    app.include_router(webhooks.router, prefix="/api", tags=["Stripe"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "synthai"}

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "SynthAI API",
            "version": "1.0.0",
            "docs": "/docs",
        }

    return app


app = create_app()
