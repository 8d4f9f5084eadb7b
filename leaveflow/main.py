"""Leaveflow — FastAPI Application Factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from leaveflow import __version__
from leaveflow.auth.router import router as auth_router
from leaveflow.balance.router import router as balance_router
from leaveflow.common.exceptions import register_exception_handlers
from leaveflow.common.logging import RequestLoggingMiddleware, configure_logging
from leaveflow.common.rate_limit import limiter
from leaveflow.config import settings
from leaveflow.database import create_tables, engine
from leaveflow.leave.router import router as leave_router

configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    # Startup
    if settings.ENVIRONMENT == "development":
        await create_tables()
    yield
    # Shutdown
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Leaveflow",
        description="Leave management API with a General → HR → Admin approval chain",
        version=__version__,
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers ({success: false, message, errors})
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Access log + X-Request-Id
    app.add_middleware(RequestLoggingMiddleware)

    # Health check (no auth)
    @app.get("/api/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": __version__,
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(leave_router, prefix="/api/leave-requests", tags=["leave-requests"])
    app.include_router(balance_router, prefix="/api/leave-balance", tags=["leave-balance"])

    return app


app = create_app()
