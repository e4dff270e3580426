"""FastAPI application factory."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.enforcement import include_tenant_router
from src.api.v1.router import api_router
from src.core.config import settings
from src.core.exceptions import register_exception_handlers
from src.core.logging import RequestLoggingMiddleware, configure_logging
from src.db.session import close_db, get_db
from src.services.scheduler import build_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s (%s)", settings.PROJECT_NAME, settings.ENV)
    scheduler = None
    if settings.scheduler.enabled:
        scheduler = build_scheduler()
        scheduler.start()
        logger.info("Background job scheduler started")

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        logger.info("Background job scheduler stopped")
    await close_db()


def create_application() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    @app.get("/ready", tags=["health"])
    async def ready(db: AsyncSession = Depends(get_db)):
        await db.execute(text("SELECT 1"))
        return {"status": "ready"}

    include_tenant_router(app, api_router, prefix=f"{settings.API_PREFIX}/v1")
    return app


app = create_application()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


__all__ = ["create_application", "app", "run"]


if __name__ == "__main__":
    run()
