"""FieldOps — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from fieldops.adapters.persistence.database import engine
from fieldops.config import settings
from fieldops.infrastructure.api.errors import register_error_handlers
from fieldops.infrastructure.api.routes_admin import router as admin_router
from fieldops.infrastructure.api.routes_dispatch import router as dispatch_router
from fieldops.infrastructure.api.routes_health import router as health_router
from fieldops.infrastructure.api.routes_tickets import router as tickets_router

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        async with engine.begin():
            pass  # Connection pool warmed up
        logger.info("Database connection established")
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Database not available on startup: %s", e)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="FieldOps — Ticket Dispatch & Lifecycle Engine",
        description="Smart auto-assignment, ticket state machine and SLA bonus accounting",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(tickets_router, prefix="/api")
    app.include_router(dispatch_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")

    return app


app = create_app()
