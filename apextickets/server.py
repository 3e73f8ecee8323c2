"""Application factory.

    uvicorn apextickets.server:create_app --factory

Every client (database engine, httpx, redis, payment processor) is
constructed once on startup and parked on ``app.state``; routes reach
them through the dependencies in ``routes/deps.py``.
"""

from typing import Optional

import httpx
import structlog
from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from .cache import ResponseCache, new_cache, redis_from_url
from .catalog import CatalogStore
from .config import Settings
from .errors import ApiError, ConfigError, api_error_handler
from .infra.sql import make_async_engine
from .inventory import InventoryProxy, XS2Client
from .logs import configure_logging
from .model.db import Base
from .orders import OrderStore
from .payments import PaymentAdapter, StripePay
from .routes import ROUTERS

log = structlog.get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    payments: Optional[PaymentAdapter] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    cache: Optional[ResponseCache] = None,
) -> FastAPI:
    """Build the app; ``payments``, ``transport`` and ``cache`` override
    the clients startup would otherwise construct from ``settings``."""
    settings = settings or Settings.from_env()
    if not settings.database_url:
        raise ConfigError("NEED DATABASE_URL!")
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(
        title="Apex Tickets",
        default_response_class=ORJSONResponse,
    )
    app.state.settings = settings
    app.add_exception_handler(ApiError, api_error_handler)
    for router in ROUTERS:
        app.include_router(router)

    # ---
    # startup / shutdown
    # ---
    @app.on_event("startup")
    async def _say_hello():
        log.info(
            "startup",
            cache_backend="injected" if cache is not None
            else settings.cache_backend,
            xs2_api_base=settings.xs2_api_base,
            xs2_api_key=bool(settings.xs2_api_key),
            stripe=bool(settings.stripe_secret_key) or payments is not None,
            public_base_url=settings.public_base_url,
        )

    @app.on_event("startup")
    async def _db_init():
        engine, SessionAsync = make_async_engine(settings.database_url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        app.state.engine = engine
        app.state.catalog = CatalogStore(SessionAsync)
        app.state.orders = OrderStore(SessionAsync)

    @app.on_event("startup")
    async def _http_client_start():
        app.state.http = httpx.AsyncClient(
            timeout=settings.upstream_timeout,
            limits=httpx.Limits(
                max_connections=100, max_keepalive_connections=20
            ),
            transport=transport,
        )

    @app.on_event("startup")
    async def _cache_start():
        if cache is not None:
            app.state.cache = cache
            return
        r = None
        if settings.cache_backend == "redis":
            r = redis_from_url(settings.redis_url, settings.redis_max_conn)
            app.state.redis = r
        app.state.cache = new_cache(
            settings.cache_backend, ttl_seconds=settings.cache_ttl_seconds,
            r=r,
        )

    @app.on_event("startup")
    async def _services_start():
        client = XS2Client(app.state.http, settings.xs2_api_key,
                           settings.xs2_api_base)
        app.state.proxy = InventoryProxy(client, app.state.cache)
        app.state.payments = payments or StripePay(
            settings.stripe_secret_key, settings.stripe_webhook_secret
        )

    @app.on_event("shutdown")
    async def _http_client_stop():
        http = getattr(app.state, "http", None)
        if http is not None:
            await http.aclose()
            app.state.http = None

    @app.on_event("shutdown")
    async def _redis_stop():
        r = getattr(app.state, "redis", None)
        if r is not None:
            await r.close()
            app.state.redis = None

    @app.on_event("shutdown")
    async def _db_stop():
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            await engine.dispose()
            app.state.engine = None

    return app
