"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from secadmin.core.config import Settings, settings as default_settings
from secadmin.core.middleware import setup_middleware
from secadmin.core.exceptions import SecAdminError
from secadmin.db.session import Database

from secadmin.api.catalog import (
    functions_router, modules_router, operations_router, privileges_router,
)
from secadmin.api.roles import duty_roles_router, job_roles_router
from secadmin.api.users import router as users_router

logger = logging.getLogger("secadmin")


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the API. A ``database`` passed in is used as-is and not disposed."""
    settings = settings or default_settings

    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup and shutdown events."""
        logger.info("Starting %s", settings.APP_NAME)
        owned = database is None
        app.state.database = database or Database(config=settings)
        if app.state.database.ping():
            logger.info("Database connected")
        else:
            logger.warning("Database not available")

        yield

        if owned:
            app.state.database.dispose()
        logger.info("Shutting down %s", settings.APP_NAME)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Duty role and job role administration with role inheritance",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    # Middleware
    setup_middleware(app, settings)

    @app.exception_handler(SecAdminError)
    async def secadmin_exception_handler(request: Request, exc: SecAdminError):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.message,
                "ids": exc.details,
                "request_id": getattr(request.state, "request_id", None),
            },
        )

    # Register routers
    app.include_router(modules_router, prefix="/api")
    app.include_router(functions_router, prefix="/api")
    app.include_router(operations_router, prefix="/api")
    app.include_router(privileges_router, prefix="/api")
    app.include_router(duty_roles_router, prefix="/api")
    app.include_router(job_roles_router, prefix="/api")
    app.include_router(users_router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "name": settings.APP_NAME,
            "version": "0.1.0",
            "docs": "/docs",
        }

    @app.get("/api/health")
    async def health(request: Request):
        """Quick health check endpoint."""
        db_ok = request.app.state.database.ping()
        return {"status": "ok" if db_ok else "degraded", "database": db_ok}

    return app


app = create_app()
