import json
import time
from datetime import datetime, timedelta, timezone

import httpx
import jwt
import pytest

from shop_relay.auth import SessionTokenError, authenticate_admin, shop_from_claims
from shop_relay.services.session_store import store_session

SHOP = "demo.myshopify.com"
API_KEY = "test-api-key"
API_SECRET = "test-api-secret"


def make_token(shop=SHOP, secret=API_SECRET, audience=API_KEY, issuer_shop=None, exp_offset=60):
    now = int(time.time())
    claims = {
        "iss": f"https://{issuer_shop or shop}/admin",
        "dest": f"https://{shop}",
        "aud": audience,
        "sub": "42",
        "exp": now + exp_offset,
        "nbf": now - 5,
        "iat": now - 5,
        "jti": "token-id",
        "sid": "session-id",
    }
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def authed_app(relay_app, settings_env):
    relay_app.dependency_overrides.pop(authenticate_admin, None)
    return relay_app


async def _post(app, token=None):
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        return await client.post(
            "/api/proxy",
            json={"endpoint": "https://cases.example.com/x", "method": "POST"},
            headers=headers,
        )


@pytest.mark.asyncio
async def test_valid_token_uses_stored_offline_session(authed_app, db_session, outbound):
    store_session(db_session, shop=SHOP, access_token="shpat_stored")

    response = await _post(authed_app, make_token())

    assert response.status_code == 200
    sent = json.loads(outbound.calls[0].content)
    assert sent["shopDomain"] == SHOP
    assert sent["accessToken"] == "shpat_stored"


@pytest.mark.asyncio
async def test_missing_token_is_unauthorized(authed_app, outbound):
    response = await _post(authed_app)

    assert response.status_code == 401
    assert outbound.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "token_kwargs",
    [
        {"secret": "wrong-secret"},
        {"audience": "another-app"},
        {"exp_offset": -120},
        {"issuer_shop": "other.myshopify.com"},
    ],
)
async def test_untrusted_tokens_are_rejected(authed_app, db_session, outbound, token_kwargs):
    store_session(db_session, shop=SHOP, access_token="shpat_stored")

    response = await _post(authed_app, make_token(**token_kwargs))

    assert response.status_code == 401
    assert outbound.calls == []


@pytest.mark.asyncio
async def test_shop_without_session_is_unauthorized(authed_app, outbound):
    response = await _post(authed_app, make_token())

    assert response.status_code == 401
    assert "No active session" in response.json()["detail"]
    assert outbound.calls == []


@pytest.mark.asyncio
async def test_expired_session_is_unauthorized(authed_app, db_session, outbound):
    store_session(
        db_session,
        shop=SHOP,
        access_token="shpat_old",
        expires=datetime.now(timezone.utc) - timedelta(hours=1),
    )

    response = await _post(authed_app, make_token())

    assert response.status_code == 401
    assert outbound.calls == []


def test_shop_from_claims():
    assert shop_from_claims(
        {"iss": "https://a.myshopify.com/admin", "dest": "https://a.myshopify.com"}
    ) == "a.myshopify.com"

    with pytest.raises(SessionTokenError):
        shop_from_claims({"iss": "https://a.myshopify.com/admin"})
