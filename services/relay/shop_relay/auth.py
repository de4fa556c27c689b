"""Caller identity for relayed requests.

The embedded admin UI sends a short-lived session token (an HS256 JWT signed
with the app secret) on every request. We verify it, work out which shop it was
issued for and load that shop's offline session to get an access token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict
from urllib.parse import urlparse

import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .database import get_session
from .services.session_store import load_offline_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerContext:
    shop: str
    access_token: str


class SessionTokenError(Exception):
    """Raised when a session token is missing, malformed or not trusted."""


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise SessionTokenError("Missing bearer session token")
    return token.strip()


def decode_session_token(token: str, settings: Settings) -> Dict[str, Any]:
    if not settings.shopify_api_key or not settings.shopify_api_secret:
        raise SessionTokenError(
            "RELAY_SHOPIFY_API_KEY / RELAY_SHOPIFY_API_SECRET are not configured"
        )
    try:
        return jwt.decode(
            token,
            settings.shopify_api_secret,
            algorithms=["HS256"],
            audience=settings.shopify_api_key,
            leeway=settings.session_token_leeway,
            options={"require": ["exp", "dest", "iss", "aud"]},
        )
    except jwt.PyJWTError as exc:
        raise SessionTokenError(f"Invalid session token: {exc}") from exc


def shop_from_claims(claims: Dict[str, Any]) -> str:
    shop = urlparse(str(claims.get("dest", ""))).hostname
    issuer_shop = urlparse(str(claims.get("iss", ""))).hostname
    if not shop:
        raise SessionTokenError("Session token has no destination shop")
    if issuer_shop != shop:
        raise SessionTokenError("Session token issuer does not match its destination")
    return shop


def authenticate_admin(
    request: Request,
    db: Session = Depends(get_session),
) -> CallerContext:
    """FastAPI dependency resolving the caller's shop and access token."""
    settings = get_settings()
    try:
        shop = shop_from_claims(decode_session_token(bearer_token(request), settings))
    except SessionTokenError as exc:
        logger.warning("Rejected admin request: %s", exc)
        raise _unauthorized(str(exc)) from exc

    record = load_offline_session(db, shop)
    if record is None or not record.access_token or not record.is_active():
        logger.warning("No active session stored for shop %s", shop)
        raise _unauthorized(f"No active session for shop {shop}")

    return CallerContext(shop=record.shop, access_token=record.access_token)
