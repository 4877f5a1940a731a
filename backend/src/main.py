"""
FastAPI application entry point for the family calendar backend.

create_app() is the composition root: it builds the settings, the database
engine and the session factory, stores them on app.state, and wires CORS,
exception handlers, the health check and the API routers.

Environment Variables:
    FAMCAL_DB_URL: SQLAlchemy database URL (default: sqlite:///./famcal.db)
    FAMCAL_ENV: Environment (production/development/test, default: development)
    FAMCAL_LOG_LEVEL: Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL, default: INFO)
    FAMCAL_CORS_ORIGINS: Comma-separated allowed origins
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from backend.src.config.settings import AppSettings, get_settings
from backend.src.db.database import create_db_engine, create_session_factory, init_db
from backend.src.utils.logging_config import init_logging, get_logger


APP_VERSION = "1.0.0"


def create_app(settings: Optional[AppSettings] = None, create_tables: Optional[bool] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use (default: cached environment settings)
        create_tables: Create tables on startup (default: only for SQLite
            outside production; PostgreSQL deployments use Alembic)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    engine = create_db_engine(settings)
    session_factory = create_session_factory(engine)
    if create_tables is None:
        create_tables = settings.is_sqlite and not settings.is_production

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan context manager.

        - Startup: Create tables when requested
        - Shutdown: Dispose of the engine and its connections
        """
        logger = get_logger("api")
        logger.info(f"Starting family calendar backend (env: {settings.env})")

        if create_tables:
            logger.info("Creating database tables")
            init_db(engine)

        yield

        logger.info("Shutting down family calendar backend")
        engine.dispose()

    app = FastAPI(
        title="Family Calendar API",
        description="Backend API for a shared family calendar. "
                    "Supports one-off and recurring events, per-occurrence "
                    "exceptions and blocker conflict detection.",
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory

    # Configure CORS middleware for the frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health_check() -> Dict[str, Any]:
        """
        Health check endpoint.

        Returns:
            Health status and application information
        """
        return {
            "status": "healthy",
            "service": "family-calendar-backend",
            "version": APP_VERSION,
        }

    # API routers
    from backend.src.api import events

    app.include_router(events.router, prefix="/api")

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    """Attach handlers producing consistent {error, message[, details]} bodies."""

    @app.exception_handler(RequestValidationError)
    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc) -> JSONResponse:
        """Handle request and Pydantic validation errors."""
        logger = get_logger("api")
        errors = exc.errors()
        logger.warning(
            "Validation error",
            extra={
                "path": request.url.path,
                "method": request.method,
                "errors": errors,
            }
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "Validation Error",
                "message": "Request validation failed",
                "details": _jsonable_errors(errors),
            }
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """Handle SQLAlchemy database errors."""
        logger = get_logger("db")
        logger.error(
            "Database error",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            }
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Database Error",
                "message": "An error occurred while accessing the database. "
                           "Please try again later.",
            }
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle all other unhandled exceptions."""
        logger = get_logger("api")
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
            exc_info=True,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal Server Error",
                "message": "An unexpected error occurred. Please try again later.",
            }
        )


def _jsonable_errors(errors) -> list:
    """Drop non-serializable context (e.g. the raised ValueError) from pydantic errors."""
    cleaned = []
    for error in errors:
        item = {key: value for key, value in error.items() if key not in ("ctx", "input", "url")}
        if "ctx" in error:
            item["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        cleaned.append(item)
    return cleaned


# Initialize logging before creating app
init_logging()

app = create_app()
