from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import httpx

from ..auth import CallerContext
from ..config import get_settings
from ..schemas import RelayEnvelope, RelayRequest

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Content-Type": "application/json"}


class RelayTransportError(Exception):
    """Raised when the outbound call cannot be completed."""


class RelayService:
    """Performs one outbound call on behalf of the embedded admin UI."""

    def __init__(
        self,
        timeout: float,
        default_headers: Optional[Dict[str, str]] = None,
        raw_response_limit: int = 1000,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout = timeout
        self.default_headers = default_headers or {}
        self.raw_response_limit = raw_response_limit
        self.transport = transport

    async def forward(self, request: RelayRequest, caller: CallerContext) -> RelayEnvelope:
        payload = None if request.method == "GET" else self.enrich(request.data, caller)

        logger.info("Proxy request to %s with method %s", request.endpoint, request.method)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                # Non-ASCII header values raise UnicodeEncodeError.
                headers = httpx.Headers(DEFAULT_HEADERS)
                headers.update(self.default_headers)
                headers.update(request.headers or {})
                response = await client.request(
                    request.method,
                    request.endpoint,
                    headers=headers,
                    json=payload,
                )
            except (httpx.HTTPError, httpx.InvalidURL, UnicodeEncodeError) as exc:
                raise RelayTransportError(str(exc) or exc.__class__.__name__) from exc

        logger.info(
            "Proxy response from %s: %s %s",
            request.endpoint,
            response.status_code,
            response.reason_phrase,
        )

        return RelayEnvelope(
            success=response.is_success,
            data=self.parse_body(response.text),
            status=response.status_code,
            status_text=response.reason_phrase,
        )

    @staticmethod
    def enrich(data: Any, caller: CallerContext) -> Dict[str, Any]:
        return {
            **(data or {}),
            "shopDomain": caller.shop,
            "accessToken": caller.access_token,
        }

    def parse_body(self, text: str) -> Any:
        if not text or not text.strip():
            return {"message": "Empty response"}

        try:
            return json.loads(text)
        except ValueError:
            logger.debug("Response is not valid JSON: %s", text[: self.raw_response_limit])
            return {
                "message": "Non-JSON response",
                "rawResponse": text[: self.raw_response_limit],
            }


def get_relay_service() -> RelayService:
    settings = get_settings()
    return RelayService(
        timeout=settings.request_timeout,
        default_headers=settings.default_headers,
        raw_response_limit=settings.raw_response_limit,
    )
