"""
Driver endpoints
================

PATCH /api/v1/drivers/me/availability -- go online / offline
"""

from fastapi import APIRouter, Depends, Request

from cargo_dispatch.api.dependencies import get_current_user_id, get_driver_service
from cargo_dispatch.api.middleware import current_rate_limit, limiter
from cargo_dispatch.api.schemas import AvailabilityRequest, DriverResponse
from cargo_dispatch.services.drivers import DriverService

router = APIRouter(prefix="/drivers", tags=["drivers"])


@router.patch(
    "/me/availability",
    response_model=DriverResponse,
    summary="Toggle the caller's availability",
)
@limiter.limit(current_rate_limit)
async def set_availability(
    request: Request,
    body: AvailabilityRequest,
    user_id: int = Depends(get_current_user_id),
    service: DriverService = Depends(get_driver_service),
):
    return await service.set_availability(user_id, body.is_available)
