"""
Admin / back-office endpoints
=============================

PATCH /api/v1/admin/drivers/{driver_id}/approval -- approve / suspend a driver
GET   /api/v1/admin/cancellation-fees            -- fee policy rows
PUT   /api/v1/admin/cancellation-fees            -- create or update fee policy rows
GET   /api/v1/admin/vehicle-pricing              -- vehicle tariffs
PUT   /api/v1/admin/vehicle-pricing              -- create / update a tariff
GET   /api/v1/admin/health                       -- health check (database)
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text

from cargo_dispatch.api.dependencies import (
    get_current_user_id,
    get_driver_service,
    get_pricing_service,
)
from cargo_dispatch.api.middleware import current_rate_limit, limiter
from cargo_dispatch.api.schemas import (
    ApprovalRequest,
    CancellationFeeIn,
    CancellationFeeResponse,
    DriverResponse,
    HealthResponse,
    VehiclePricingIn,
    VehiclePricingResponse,
)
from cargo_dispatch.domain.cancellation import CancellationFeeRule
from cargo_dispatch.infrastructure.database import transaction
from cargo_dispatch.services.drivers import DriverService
from cargo_dispatch.services.pricing import PricingService

router = APIRouter(prefix="/admin", tags=["admin"])

# Health stays open for the load balancer
requires_user = [Depends(get_current_user_id)]


@router.patch(
    "/drivers/{driver_id}/approval",
    response_model=DriverResponse,
    summary="Approve or suspend a driver",
    dependencies=requires_user,
)
@limiter.limit(current_rate_limit)
async def set_driver_approval(
    request: Request,
    driver_id: int,
    body: ApprovalRequest,
    service: DriverService = Depends(get_driver_service),
):
    return await service.set_approval(driver_id, body.is_approved)


@router.get(
    "/cancellation-fees",
    response_model=list[CancellationFeeResponse],
    summary="List cancellation fee rows",
    dependencies=requires_user,
)
@limiter.limit(current_rate_limit)
async def list_cancellation_fees(
    request: Request,
    service: PricingService = Depends(get_pricing_service),
):
    return await service.list_fee_rules()


@router.put(
    "/cancellation-fees",
    response_model=list[CancellationFeeResponse],
    summary="Create or update cancellation fee rows",
    dependencies=requires_user,
)
@limiter.limit(current_rate_limit)
async def upsert_cancellation_fees(
    request: Request,
    body: list[CancellationFeeIn],
    service: PricingService = Depends(get_pricing_service),
):
    return await service.upsert_fee_rules(
        CancellationFeeRule(
            status=row.order_status,
            fee_percentage=row.fee_percentage,
            is_active=row.is_active,
            description=row.description,
        )
        for row in body
    )


@router.get(
    "/vehicle-pricing",
    response_model=list[VehiclePricingResponse],
    summary="List vehicle tariffs",
    dependencies=requires_user,
)
@limiter.limit(current_rate_limit)
async def list_vehicle_pricing(
    request: Request,
    service: PricingService = Depends(get_pricing_service),
):
    return await service.list_vehicle_pricing()


@router.put(
    "/vehicle-pricing",
    response_model=VehiclePricingResponse,
    summary="Create or update a vehicle tariff",
    dependencies=requires_user,
)
@limiter.limit(current_rate_limit)
async def upsert_vehicle_pricing(
    request: Request,
    body: VehiclePricingIn,
    service: PricingService = Depends(get_pricing_service),
):
    return await service.upsert_vehicle_pricing(
        body.vehicle_type,
        base_price=body.base_price,
        price_per_km=body.price_per_km,
        labor_price=body.labor_price,
        is_active=body.is_active,
    )


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(request: Request):
    async with transaction(request.app.state.session_factory) as session:
        await session.execute(text("SELECT 1"))
    return HealthResponse()
