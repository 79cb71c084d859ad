"""FastAPI dependency injection helpers."""

import base64
import binascii
import json
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from cargo_dispatch.services.drivers import DriverService
from cargo_dispatch.services.lifecycle import OrderLifecycleService
from cargo_dispatch.services.pricing import PricingService


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> int:
    """
    Placeholder token: base64 of ``{"userId": <int>}``.

    Signature verification belongs to the auth service in front of this API.
    """
    padded = token + "=" * (-len(token) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(padded.encode()).decode())
    except (binascii.Error, UnicodeDecodeError, ValueError):
        raise _unauthorized("Malformed access token") from None
    user_id = payload.get("userId") if isinstance(payload, dict) else None
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise _unauthorized("Access token carries no user")
    return user_id


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> int:
    if not authorization:
        raise _unauthorized("Authorization header is required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Bearer token is required")
    return decode_token(token.strip())


def _service_args(request: Request) -> tuple:
    state = request.app.state
    return state.session_factory, state.publisher, state.settings


async def get_lifecycle_service(request: Request) -> OrderLifecycleService:
    return OrderLifecycleService(*_service_args(request))


async def get_driver_service(request: Request) -> DriverService:
    return DriverService(*_service_args(request))


async def get_pricing_service(request: Request) -> PricingService:
    return PricingService(*_service_args(request))
