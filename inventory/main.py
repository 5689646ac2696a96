"""
Inventory HTTP API

Products, locations, stock levels and the movement audit trail over a
relational store.

Run with ``uvicorn inventory.main:create_app --factory`` or ``inventory serve``.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inventory.api.errors import register_error_handlers
from inventory.api.routes import api_router, resource_routers
from inventory.application.container import ServiceContainer, build_container
from inventory.core import RequestLoggingMiddleware, ServiceHealth, get_logger, setup_logging
from inventory.infrastructure.db import init_models, run_migrations

SERVICE_DESCRIPTION = "Inventory management service"

logger = get_logger(__name__)

def create_app(container: Optional[ServiceContainer] = None, configure_logging: bool = True) -> FastAPI:
    container = container or build_container()
    settings = container.settings

    if configure_logging:
        setup_logging(
            service_name=settings.SERVICE_NAME,
            level=settings.LOG_LEVEL,
            environment=settings.ENVIRONMENT,
            version=settings.SERVICE_VERSION,
            log_file=settings.LOG_FILE,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.SERVICE_NAME} version {settings.SERVICE_VERSION}")

        if settings.AUTO_MIGRATE:
            try:
                logger.info("Running database migrations")
                run_migrations(container.engine)
                logger.info("Database migrations completed")
            except Exception as e:
                logger.warning(f"Migration error: {e}")

        try:
            init_models(container.engine)
            logger.info("Database models initialized")
        except Exception as e:
            logger.error(f"Failed to initialize database models: {e}")
            raise

        logger.info(f"{settings.SERVICE_NAME} started successfully")

        yield

        logger.info(f"Shutting down {settings.SERVICE_NAME}")
        container.close()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        description=SERVICE_DESCRIPTION,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json"
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    register_error_handlers(app)

    health_service = ServiceHealth(settings.SERVICE_NAME, container.engine, settings.SERVICE_VERSION,
                                   low_stock_threshold=settings.LOW_STOCK_THRESHOLD)
    app.include_router(health_service.create_health_router())
    app.include_router(api_router)

    @app.get("/")
    def root():
        return {
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "status": "running",
            "docs": "/api/docs"
        }

    @app.get("/info")
    def info():
        return {
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "description": SERVICE_DESCRIPTION,
            "environment": settings.ENVIRONMENT,
            "database": container.engine.dialect.name,
            "low_stock_threshold": settings.LOW_STOCK_THRESHOLD,
            "movement_audit_required": settings.MOVEMENT_AUDIT_REQUIRED,
            "endpoints": {
                "api": api_router.prefix,
                "resources": sorted(router.prefix.strip("/") for router in resource_routers),
                "health": ["/health", "/health/live", "/health/ready", "/health/startup"],
                "metrics": "/metrics",
                "docs": app.docs_url,
            },
        }

    return app
