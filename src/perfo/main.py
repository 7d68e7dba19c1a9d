"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from perfo.auth.router import router as auth_router
from perfo.config import get_settings
from perfo.database import close_db, init_db
from perfo.gamification.router import router as gamification_router
from perfo.health.router import router as health_router
from perfo.keys.router import router as keys_router
from perfo.meters.router import router as meters_router
from perfo.middleware import setup_middleware
from perfo.notifications.router import router as notifications_router
from perfo.redis_client import close_redis, init_redis
from perfo.requests.router import router as requests_router
from perfo.rewards.router import router as rewards_router
from perfo.tasks.router import router as tasks_router
from perfo.users.router import router as users_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Perfo Points API",
        description="Backend API for Perfo Points, a family task and reward tracker",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(tasks_router)
    app.include_router(rewards_router)
    app.include_router(requests_router)
    app.include_router(keys_router)
    app.include_router(meters_router)
    app.include_router(gamification_router)
    app.include_router(notifications_router)

    return app


app = create_app()
