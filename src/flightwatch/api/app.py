"""FastAPI app factory."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from flightwatch.api.flights import router as flights_router
from flightwatch.api.subscriptions import router as subscriptions_router
from flightwatch.api.users import router as users_router
from flightwatch.db.engine import get_engine, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    env = os.environ.get("ENVIRONMENT", "development")
    engine = get_engine()

    if env == "development":
        init_db(engine)
        logger.info("Dev mode: tables created via init_db")

    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    load_dotenv()

    app = FastAPI(
        title="Flightwatch API",
        description="Flight status monitoring and traveler notifications",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(subscriptions_router, prefix="/api")
    app.include_router(flights_router, prefix="/api")
    app.include_router(users_router, prefix="/api")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
