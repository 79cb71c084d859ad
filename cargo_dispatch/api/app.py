"""
FastAPI application factory.

* Registers routes for orders, drivers, pricing and admin.
* Builds the database engine and the Redis event publisher up front and
  disposes of them on shutdown via lifespan events.
* Applies rate limiting and the shared error envelope.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import redis.asyncio as aioredis

from cargo_dispatch.api.errors import register_exception_handlers
from cargo_dispatch.api.middleware import configure_rate_limit, limiter
from cargo_dispatch.api.routes import admin, drivers, orders, pricing
from cargo_dispatch.config import Settings, settings as default_settings
from cargo_dispatch.infrastructure.database import create_engine, create_session_factory
from cargo_dispatch.infrastructure.events import OrderEventPublisher, create_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("app_started")
    yield
    # Only release what the factory built itself
    if app.state.engine is not None:
        await app.state.engine.dispose()
    if app.state.owns_redis:
        await app.state.redis.aclose()
    logger.info("app_stopped")


def create_app(
    settings: Optional[Settings] = None,
    *,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    redis: Optional[aioredis.Redis] = None,
) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Cargo Dispatch API",
        description=(
            "Books ride and cargo orders, drives them through the "
            "requested -> delivered lifecycle, prices them and applies "
            "status-dependent cancellation fees."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = None
    if session_factory is None:
        app.state.engine = create_engine(settings)
        session_factory = create_session_factory(app.state.engine)
    app.state.session_factory = session_factory

    app.state.owns_redis = redis is None
    app.state.redis = redis if redis is not None else create_redis(settings.redis_url)
    app.state.publisher = OrderEventPublisher(app.state.redis, settings.events_channel)

    # Rate limiter
    configure_rate_limit(settings.rate_limit)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    # Routers
    app.include_router(orders.router, prefix="/api/v1")
    app.include_router(drivers.router, prefix="/api/v1")
    app.include_router(pricing.router, prefix="/api/v1")
    app.include_router(admin.router, prefix="/api/v1")

    return app
