"""FastAPI application factory.

Learn: App factory pattern: create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown (Redis, database).
Middleware, guards, and routers are all registered here.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from welth import __version__
from welth.api import api_router, pages_router
from welth.cache.pages import PageCache
from welth.config import settings
from welth.middleware.matcher import create_route_matcher
from welth.security.guard import build_action_guard, build_edge_guard

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` at
    shutdown. With Redis up, the action guard is rebuilt on top of
    Redis buckets so every worker shares one rate limit.
    """
    logger.info(
        "welth.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    from welth.cache.redis import close_redis, init_redis
    from welth.security.ratelimit import RedisTokenBucketStore

    try:
        redis = await init_redis()
        app.state.action_guard = build_action_guard(
            settings, RedisTokenBucketStore(redis)
        )
        logger.info("welth.redis_connected", url=settings.redis_url)
    except Exception as e:
        logger.warning("welth.redis_unavailable", error=str(e))
        # Rate limits stay per-process, page cache is disabled

    yield

    logger.info("welth.shutdown")
    await close_redis()

    from welth.db.engine import engine
    await engine.dispose()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    app = FastAPI(
        title="Welth",
        description="Personal-finance backend: accounts, dashboard, edge protection",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.action_guard = build_action_guard(settings)
    app.state.page_cache = PageCache(ttl=settings.page_cache_ttl)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration.
    # Request flow: RequestId → EdgeProtection → AuthGate → CORS → handler

    from welth.middleware.auth_gate import AuthGateMiddleware
    from welth.middleware.edge import EdgeProtectionMiddleware
    from welth.middleware.request_id import RequestIdMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(
        AuthGateMiddleware,
        is_protected=create_route_matcher(settings.protected_routes),
    )
    app.add_middleware(EdgeProtectionMiddleware, guard=build_edge_guard(settings))
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)
    app.include_router(pages_router, tags=["pages"])

    return app


# Default app instance (used by uvicorn: welth.main:app)
app = create_app()
