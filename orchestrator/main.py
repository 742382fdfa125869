"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orchestrator.config import get_settings
from orchestrator.infrastructure.database import Base, engine
from orchestrator.infrastructure.logging.log_config import setup_logging
from orchestrator.presentation.api.error_handlers import register_exception_handlers
from orchestrator.presentation.api.middleware import request_id_middleware, security_headers_middleware
from orchestrator.presentation.api.router import router as api_router
from orchestrator.presentation.api.v1.endpoints.health import router as health_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: configure logging and create database tables."""
    settings = get_settings()
    setup_logging()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(
        "%s %s started (env=%s)", settings.service_name, settings.app_version, settings.app_env
    )

    yield

    await engine.dispose()


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(api_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "orchestrator.main:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
    )
