import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from erp_portal.config import settings
from erp_portal.database import Base, engine
from erp_portal.exception_handlers import register_exception_handlers
from erp_portal.middleware.logging import StructuredLoggingMiddleware, setup_structured_logging
from erp_portal.middleware.tenant import TenantMiddleware
from erp_portal.routes import erp_auth, health, proxy, public, tenants

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} in {settings.environment} mode")
    if settings.debug:
        # Migrations own the schema outside debug runs
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created (if not existing).")
    yield
    await engine.dispose()
    logger.info("Shutting down the application...")


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    setup_structured_logging(log_level=settings.log_level, json_format=settings.log_json)

    app = FastAPI(
        title=settings.app_name,
        description="Multi-tenant portal in front of the tenants' ERP installations",
        debug=settings.debug,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Outermost middleware is added last
    app.add_middleware(TenantMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(tenants.router)
    app.include_router(public.router)
    app.include_router(erp_auth.router)
    app.include_router(erp_auth.tenant_router)
    app.include_router(proxy.router)

    if settings.debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
