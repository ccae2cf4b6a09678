"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import convoys, health, monitor, offers
from .config import settings
from .services.monitoring import registry as monitor_registry


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    monitor_registry.get_registry().stop_all()


def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(convoys.router, prefix=settings.api_prefix)
    app.include_router(offers.router, prefix=settings.api_prefix)
    app.include_router(monitor.router, prefix=settings.api_prefix)
    return app


app = create_app()
