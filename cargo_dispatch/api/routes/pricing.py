"""
Pricing endpoints
=================

POST /api/v1/pricing/calculate -- cargo price preview by distance or coordinates
"""

from fastapi import APIRouter, Depends, Request

from cargo_dispatch.api.dependencies import get_current_user_id, get_pricing_service
from cargo_dispatch.api.middleware import current_rate_limit, limiter
from cargo_dispatch.api.schemas import PriceCalculationRequest, PriceCalculationResponse
from cargo_dispatch.domain.entities import Location
from cargo_dispatch.domain.errors import InvalidInput
from cargo_dispatch.services.pricing import PricingService

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post(
    "/calculate",
    response_model=PriceCalculationResponse,
    summary="Preview a cargo price",
)
@limiter.limit(current_rate_limit)
async def calculate_price(
    request: Request,
    body: PriceCalculationRequest,
    user_id: int = Depends(get_current_user_id),
    service: PricingService = Depends(get_pricing_service),
):
    if body.pickup is not None and body.destination is not None:
        return await service.quote_fare_between(
            Location(body.pickup.latitude, body.pickup.longitude),
            Location(body.destination.latitude, body.destination.longitude),
            body.labor_count,
            body.vehicle_type,
        )
    if body.distance_km is None:
        raise InvalidInput("Either distance_km or pickup and destination are required")
    return await service.quote_fare(body.distance_km, body.labor_count, body.vehicle_type)
