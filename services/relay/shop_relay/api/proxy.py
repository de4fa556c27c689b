from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..auth import CallerContext, authenticate_admin
from ..schemas import RelayErrorBody, RelayRequest
from ..services.relay import RelayService, RelayTransportError, get_relay_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proxy", tags=["proxy"])

MISSING_PARAMETERS = "Missing required parameters. Please provide 'endpoint' and 'method'."


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=RelayErrorBody(error=message).model_dump(),
    )


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


async def _read_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


@router.get("")
async def proxy_status() -> Dict[str, Any]:
    return {
        "success": True,
        "message": "API proxy endpoint is available. Use POST method to make proxy requests.",
    }


@router.post("")
async def proxy_request(
    request: Request,
    caller: CallerContext = Depends(authenticate_admin),
    relay: RelayService = Depends(get_relay_service),
) -> JSONResponse:
    body = await _read_body(request)
    if not isinstance(body, dict) or not body.get("endpoint") or not body.get("method"):
        return _error(status.HTTP_400_BAD_REQUEST, MISSING_PARAMETERS)

    try:
        relay_request = RelayRequest.model_validate(body)
    except ValidationError as exc:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            f"Invalid proxy request: {_describe_validation_error(exc)}",
        )

    try:
        envelope = await relay.forward(relay_request, caller)
    except RelayTransportError as exc:
        logger.error("Proxy error calling %s: %s", relay_request.endpoint, exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Proxy error: {exc}")

    # Outbound failures still answer 200; the envelope carries the real status.
    return JSONResponse(status_code=status.HTTP_200_OK, content=envelope.model_dump(by_alias=True))


@router.api_route("", methods=["PUT", "PATCH", "DELETE"])
async def proxy_method_not_allowed(
    caller: CallerContext = Depends(authenticate_admin),
) -> JSONResponse:
    return _error(status.HTTP_405_METHOD_NOT_ALLOWED, "Method not allowed")
