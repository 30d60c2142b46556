"""FastAPI application for crm-admin."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import sys
import os

from crm_admin.backup import BackupManager
from .config import settings
from .exceptions import register_exception_handlers
from .routers import backup, health

# App-managed logging: attach our own handler to the package logger and don't
# propagate, so INFO lines show up regardless of uvicorn's logging config.
crm_logger = logging.getLogger("crm-admin")
crm_logger.setLevel(logging.INFO)
crm_logger.propagate = False

# Clear any existing handlers to avoid duplicates
crm_logger.handlers.clear()

console_handler = logging.StreamHandler(sys.stdout)
console_handler.setLevel(logging.INFO)

formatter = logging.Formatter(
    '%(asctime)s - [%(name)s] - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
console_handler.setFormatter(formatter)
crm_logger.addHandler(console_handler)

# Allow falling back to server-managed logging in production
if os.getenv("DISABLE_APP_LOGGING", "false").lower() == "true":
    crm_logger.handlers.clear()
    crm_logger.propagate = True

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the backup configuration in use."""
    manager: BackupManager = app.state.backup_manager
    logger.info(f"Live database: {manager.database_path}")
    logger.info(f"Backup directory: {manager.backup_dir}")
    if not manager.database_path.exists():
        logger.warning(f"Live database not found at {manager.database_path}")

    yield

    logger.info("Shutting down crm-admin API...")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.state.backup_manager = BackupManager(settings.backup_config())

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(backup.router, prefix=settings.api_prefix)
    app.include_router(health.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "docs": f"{settings.api_prefix}/docs"
        }

    return app


# Create default app instance
app = create_app()
