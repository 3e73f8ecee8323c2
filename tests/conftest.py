# tests/conftest.py
from __future__ import annotations

import asyncio
import hashlib
import hmac
import time
from typing import Any, Callable, Dict, List, Optional

import httpx
import orjson
import pytest
from fastapi.testclient import TestClient

from apextickets.cache import MemoryCache
from apextickets.config import Settings
from apextickets.infra.sql import make_async_engine
from apextickets.inventory import InventoryProxy, XS2Client
from apextickets.model.db import Base
from apextickets.payments import PaymentIntent, StripePay
from apextickets.server import create_app

XS2_BASE = "https://xs2.test/v1"
WEBHOOK_SECRET = "whsec_test_secret"
SITE_URL = "https://apex.test"


# ==============================================================
# Fake upstream inventory API
# ==============================================================
class FakeUpstream:
    """httpx MockTransport handler keyed by path below the API base.

    A route maps to a static (status, json) pair or to a callable taking
    the request's query params and returning one.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, Any] = {}
        self.calls: List[httpx.Request] = []

    def on(self, path: str, response: Any, status: int = 200) -> None:
        self.routes[path] = response if callable(response) else (status, response)

    def calls_to(self, path: str) -> List[httpx.Request]:
        return [c for c in self.calls if self._path(c) == path]

    @staticmethod
    def _path(request: httpx.Request) -> str:
        prefix = httpx.URL(XS2_BASE).path.rstrip("/")
        return request.url.path[len(prefix):].lstrip("/")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get(self._path(request))
        if route is None:
            return httpx.Response(404, json={"detail": "not found"})
        status, body = route(dict(request.url.params)) if callable(route) else route
        return httpx.Response(status, json=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakePay(StripePay):
    """Stripe webhook verification, canned payment intents."""

    def __init__(self, webhook_secret: Optional[str] = WEBHOOK_SECRET) -> None:
        super().__init__(None, webhook_secret)
        self.intents: List[Dict[str, Any]] = []

    async def create_payment_intent(self, amount, currency, metadata) -> PaymentIntent:
        n = len(self.intents) + 1
        self.intents.append(
            {"amount": amount, "currency": currency, "metadata": metadata}
        )
        return {"id": f"pi_test_{n}", "client_secret": f"pi_test_{n}_secret"}


def stripe_signature(payload: bytes, secret: str = WEBHOOK_SECRET,
                     ts: Optional[int] = None) -> str:
    ts = int(time.time()) if ts is None else ts
    signed = f"{ts}.".encode() + payload
    sig = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


def stripe_event(event_type: str, intent_id: str) -> bytes:
    return orjson.dumps({
        "id": "evt_test",
        "object": "event",
        "type": event_type,
        "data": {"object": {"id": intent_id, "object": "payment_intent"}},
    })


# ==============================================================
# Fixtures
# ==============================================================
@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'apex.db'}"


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def settings(db_url) -> Settings:
    return Settings(
        database_url=db_url,
        xs2_api_key="test-key",
        xs2_api_base=XS2_BASE,
        stripe_webhook_secret=WEBHOOK_SECRET,
        public_base_url=SITE_URL + "/",
        log_json=False,
    )


@pytest.fixture
def payments() -> FakePay:
    return FakePay()


@pytest.fixture
def seed(db_url) -> Callable[..., None]:
    """Insert ORM rows into the test database from sync tests."""

    def _seed(*rows) -> None:
        async def run():
            engine, Session = make_async_engine(db_url)
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            async with Session() as db:
                async with db.begin():
                    db.add_all(list(rows))
            await engine.dispose()

        asyncio.run(run())

    return _seed


@pytest.fixture
def client(settings, upstream, payments):
    app = create_app(
        settings,
        payments=payments,
        transport=upstream.transport(),
        cache=MemoryCache(ttl_seconds=settings.cache_ttl_seconds),
    )
    with TestClient(app) as c:
        yield c


@pytest.fixture
async def Session(db_url):
    engine, SessionAsync = make_async_engine(db_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SessionAsync
    await engine.dispose()


@pytest.fixture
async def proxy(upstream):
    async with httpx.AsyncClient(transport=upstream.transport()) as http:
        yield InventoryProxy(
            XS2Client(http, "test-key", XS2_BASE),
            MemoryCache(ttl_seconds=60),
        )
