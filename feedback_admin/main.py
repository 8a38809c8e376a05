"""
Feedback Admin - FastAPI Application Entry Point

This module builds the FastAPI application with all middleware, routers,
exception handlers and lifecycle event handlers.

Run locally with:
    uvicorn feedback_admin.main:app --reload --port 4000
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from feedback_admin import __version__
from feedback_admin.api.routes import admin, auth, health, public
from feedback_admin.core.config import Settings, settings
from feedback_admin.core.database import async_session_maker, close_db, init_db
from feedback_admin.core.exceptions import register_exception_handlers
from feedback_admin.core.logging_config import get_logger, setup_logging
from feedback_admin.middleware import (
    LoggingMiddleware,
    RateLimitMiddleware,
    RequestIDMiddleware,
    SecurityHeadersMiddleware,
)
from feedback_admin.services.admin_seeder import ensure_default_admin


logger = get_logger(__name__)


def build_lifespan(app_settings: Settings):
    """
    Build the lifespan handler for an application using app_settings.

    Startup:
        - Configure logging
        - Create missing tables
        - Ensure the seed administrator exists

    Shutdown:
        - Dispose the database engine
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(level=app_settings.log_level, json_format=app_settings.log_json)

        await init_db(create_all=app_settings.database_create_all)

        async with async_session_maker() as session:
            await ensure_default_admin(session, app_settings)
            await session.commit()

        logger.info(
            "Application started",
            extra={"environment": app_settings.environment, "auth_mode": app_settings.auth_mode},
        )

        yield

        await close_db()

    return lifespan


def create_application(app_settings: Settings = settings) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings controlling middleware and route prefixes

    Returns:
        Configured FastAPI instance
    """
    application = FastAPI(
        title=f"{app_settings.app_name} API",
        version=__version__,
        description="Feedback collection with password + OTP administrator authentication",
        docs_url=None if app_settings.is_production else "/docs",
        redoc_url=None if app_settings.is_production else "/redoc",
        lifespan=build_lifespan(app_settings),
    )

    # Middleware runs in reverse order of registration
    # (last registered = first executed)
    application.add_middleware(SecurityHeadersMiddleware, hsts=app_settings.cookie_secure)
    application.add_middleware(
        RateLimitMiddleware,
        max_requests=app_settings.rate_limit_max,
        window_seconds=app_settings.rate_limit_window_seconds,
        path_prefix=f"{app_settings.api_prefix}/",
        enabled=app_settings.rate_limit_enabled,
    )
    application.add_middleware(LoggingMiddleware)
    application.add_middleware(RequestIDMiddleware)

    # Cookies only cross origins in session mode
    application.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.client_url,
        allow_credentials=app_settings.auth_mode == "session",
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["Content-Disposition", "X-Request-ID", "Retry-After"],
    )

    register_exception_handlers(application)

    prefix = app_settings.api_prefix
    application.include_router(health.router, tags=["health"])
    application.include_router(auth.router, prefix=f"{prefix}/auth", tags=["auth"])
    application.include_router(public.router, prefix=f"{prefix}/public", tags=["public"])
    application.include_router(admin.router, prefix=f"{prefix}/admin", tags=["admin"])

    @application.get("/")
    async def root():
        """Basic API information."""
        return {
            "message": f"{app_settings.app_name} API",
            "version": __version__,
        }

    return application


app = create_application()
