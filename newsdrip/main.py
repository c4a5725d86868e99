# newsdrip/main.py
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
from newsdrip.config import settings
from newsdrip.database.connection import Database
from newsdrip.dependencies import Services, build_services
from newsdrip.errors import InvalidTransition, NotFound, StoreUnavailable, ValidationFailure
from newsdrip.middleware.cors import setup_cors
from newsdrip.routes.admin import router as admin_router
from newsdrip.routes.public import router as public_router

import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    logger.info("Starting NewsDrip API...")
    owns_services = getattr(app.state, "services", None) is None
    if owns_services:
        db = Database(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout
        )
        try:
            await db.get_pool()
            logger.info("Database connection pool initialized")
        except StoreUnavailable as e:
            if settings.environment == "development":
                logger.warning(f"Database connection failed (development mode): {e}")
            else:
                logger.error(f"Failed to initialize database: {e}")
                raise
        app.state.services = build_services(db)

    yield

    # Shutdown
    logger.info("Shutting down NewsDrip API...")
    if owns_services:
        services: Services = app.state.services
        sms_adapter = services.adapters.get("sms")
        if sms_adapter is not None and hasattr(sms_adapter, "close"):
            await sms_adapter.close()
        await services.db.close()
        logger.info("Database connections closed")

def create_app(services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(
        title="NewsDrip API",
        description="Newsletter publishing and subscriber management API",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.services = services

    setup_cors(app)
    app.include_router(public_router)
    app.include_router(admin_router)

    @app.get("/")
    async def root():
        return {"message": "NewsDrip API", "status": "healthy"}

    @app.get("/health")
    async def health_check(request: Request):
        """Health check including database"""
        try:
            db_healthy = await request.app.state.services.db.ping()
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            db_healthy = False

        return {
            "status": "healthy" if db_healthy else "degraded",
            "environment": settings.environment,
            "database_healthy": db_healthy
        }

    @app.exception_handler(ValidationFailure)
    async def validation_failure_handler(request: Request, exc: ValidationFailure):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition):
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)})

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        logger.error(f"Store unavailable during {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Service temporarily unavailable. Please try again later."}
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"}
        )

    return app

app = create_app()
