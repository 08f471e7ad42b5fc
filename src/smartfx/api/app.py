"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smartfx import __version__
from smartfx.config import get_settings
from smartfx.ledger.database import close_db, init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    # Startup
    if settings.consumption_store.lower() == "database":
        await init_db()
    yield
    # Shutdown
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="SmartFX API",
        description="Signed-rate stablecoin swaps",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from smartfx.api.routes import health, quotes, swaps

    app.include_router(health.router, tags=["Health"])
    app.include_router(quotes.router, prefix="/api/v1")
    app.include_router(swaps.router, prefix="/api/v1")

    return app
