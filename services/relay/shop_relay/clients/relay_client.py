"""Client side of the relay.

Callers name an external endpoint and the client routes the call through the
relay endpoint, which performs it server-side. ``call`` never raises for relay
or external failures and hands back a ``RelayResult`` instead; ``call_or_raise``
and ``request`` raise.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """Base class for failures surfaced by the relay client."""

    def __init__(self, message: str, *, status: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data


class RelayProxyError(RelayError):
    """The relay endpoint itself could not complete the call."""


class ExternalAPIError(RelayError):
    """The relay worked but the external service answered outside 2xx."""


@dataclass
class RelayResult:
    data: Any = None
    error: Optional[RelayError] = None
    status: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.data


def describe_external_error(status: Optional[int], data: Any) -> str:
    message = f"External API error: {status or 'Unknown'}"
    if not isinstance(data, dict):
        return message

    if data.get("error"):
        detail = _as_text(data["error"])
    elif data.get("errors"):
        errors = data["errors"]
        if isinstance(errors, list):
            detail = ", ".join(_as_text(item) for item in errors)
        else:
            detail = _as_text(errors)
    elif data.get("message"):
        detail = _as_text(data["message"])
    else:
        return message
    return f"{message} - {detail}"


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


class RelayClient:
    def __init__(
        self,
        base_url: str,
        *,
        session_token: Optional[str] = None,
        timeout: float = 10.0,
        proxy_path: str = "/api/proxy",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session_token = session_token
        self.timeout = timeout
        self.proxy_path = proxy_path
        self.transport = transport

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        data: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> RelayResult:
        logger.info("Making %s proxy request to %s", method, endpoint)

        body = {
            "endpoint": endpoint,
            "method": method,
            "data": dict(data) if data is not None else None,
            "headers": dict(headers or {}),
        }
        request_headers = {"Content-Type": "application/json"}
        if self.session_token:
            request_headers["Authorization"] = f"Bearer {self.session_token}"

        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        ) as client:
            try:
                response = await client.post(self.proxy_path, json=body, headers=request_headers)
            except httpx.HTTPError as exc:
                error = RelayProxyError(f"Proxy error: {exc}")
                logger.error("Proxy request failed: %s", error)
                return RelayResult(error=error)

        if not response.is_success:
            error = RelayProxyError(
                self._relay_error_message(response), status=response.status_code
            )
            logger.error("Proxy request failed: %s", error)
            return RelayResult(error=error, status=response.status_code)

        try:
            envelope = response.json()
        except ValueError:
            envelope = None
        if not isinstance(envelope, dict):
            error = RelayProxyError(
                f"Proxy error: unreadable relay response ({response.status_code})",
                status=response.status_code,
            )
            logger.error("Proxy request failed: %s", error)
            return RelayResult(error=error, status=response.status_code)

        status = envelope.get("status")
        payload = envelope.get("data")
        if not envelope.get("success"):
            error = ExternalAPIError(
                describe_external_error(status, payload), status=status, data=payload
            )
            logger.error("API request failed: %s", error)
            return RelayResult(error=error, status=status)

        return RelayResult(data=payload, status=status)

    async def call_or_raise(
        self,
        endpoint: str,
        method: str = "GET",
        data: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        result = await self.call(endpoint, method, data, headers)
        return result.unwrap()

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        data: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        *,
        throw_on_http_error: bool = True,
    ) -> Any:
        """Relay a call and return the external payload.

        With ``throw_on_http_error`` off, a non-2xx external answer is returned
        as its payload and the caller has to inspect it. Relay failures always
        raise.
        """
        result = await self.call(endpoint, method, data, headers)
        if isinstance(result.error, ExternalAPIError) and not throw_on_http_error:
            return result.error.data
        return result.unwrap()

    async def get(
        self,
        endpoint: str,
        headers: Optional[Mapping[str, str]] = None,
        *,
        throw_on_http_error: bool = True,
    ) -> Any:
        return await self.request(
            endpoint, "GET", None, headers, throw_on_http_error=throw_on_http_error
        )

    async def post(
        self,
        endpoint: str,
        data: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        *,
        throw_on_http_error: bool = True,
    ) -> Any:
        return await self.request(
            endpoint, "POST", data, headers, throw_on_http_error=throw_on_http_error
        )

    async def put(
        self,
        endpoint: str,
        data: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        *,
        throw_on_http_error: bool = True,
    ) -> Any:
        return await self.request(
            endpoint, "PUT", data, headers, throw_on_http_error=throw_on_http_error
        )

    async def delete(
        self,
        endpoint: str,
        data: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        *,
        throw_on_http_error: bool = True,
    ) -> Any:
        return await self.request(
            endpoint, "DELETE", data, headers, throw_on_http_error=throw_on_http_error
        )

    @staticmethod
    def _relay_error_message(response: httpx.Response) -> str:
        fallback = f"Proxy error: {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            return fallback
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return fallback
