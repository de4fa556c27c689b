from typing import Callable, List

import httpx
import pytest

from shop_relay.auth import CallerContext, authenticate_admin
from shop_relay.config import get_settings
from shop_relay.database import create_schema, get_sessionmaker, reset_engine
from shop_relay.main import app
from shop_relay.services.relay import RelayService, get_relay_service

API_KEY = "test-api-key"
API_SECRET = "test-api-secret"
SHOP = "demo.myshopify.com"


class OutboundRecorder:
    """Stands in for the external service and remembers what reached it."""

    def __init__(self) -> None:
        self.calls: List[httpx.Request] = []
        self.responder: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200, json={"ok": True}
        )

    def respond_with(self, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self.responder = responder

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        return self.responder(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def outbound() -> OutboundRecorder:
    return OutboundRecorder()


@pytest.fixture
def caller() -> CallerContext:
    return CallerContext(shop=SHOP, access_token="shpat_test_token")


@pytest.fixture
def relay_service(outbound: OutboundRecorder) -> RelayService:
    return RelayService(timeout=5.0, transport=outbound.transport())


@pytest.fixture
def settings_env(monkeypatch, tmp_path):
    monkeypatch.setenv("RELAY_DATABASE_URL", f"sqlite:///{tmp_path / 'sessions.db'}")
    monkeypatch.setenv("RELAY_SHOPIFY_API_KEY", API_KEY)
    monkeypatch.setenv("RELAY_SHOPIFY_API_SECRET", API_SECRET)
    get_settings.cache_clear()
    reset_engine()
    create_schema()
    yield get_settings()
    reset_engine()
    get_settings.cache_clear()


@pytest.fixture
def db_session(settings_env):
    session = get_sessionmaker()()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def relay_app(relay_service: RelayService, caller: CallerContext):
    """The FastAPI app with a fixed caller and the mock outbound transport."""
    app.dependency_overrides[authenticate_admin] = lambda: caller
    app.dependency_overrides[get_relay_service] = lambda: relay_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def asgi_client(relay_app):
    def _build() -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=relay_app), base_url="http://testserver"
        )

    return _build
