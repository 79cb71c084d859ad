"""
Order endpoints
===============

POST  /api/v1/orders                          -- book an order
GET   /api/v1/orders                          -- the caller's orders, newest first
GET   /api/v1/orders/pending                  -- requested orders near a driver
GET   /api/v1/orders/active                   -- the caller's active order
GET   /api/v1/orders/{order_id}               -- order details
GET   /api/v1/orders/{order_id}/history       -- status audit trail
POST  /api/v1/orders/{order_id}/cancel        -- cancel (customer)
GET   /api/v1/orders/{order_id}/cancellation-fee -- what cancelling would cost
POST  /api/v1/orders/{order_id}/status        -- advance the lifecycle
PATCH /api/v1/orders/{order_id}/labor         -- correct helper count (driver)
POST  /api/v1/orders/{order_id}/rating        -- rate a completed trip
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from cargo_dispatch.api.dependencies import (
    get_current_user_id,
    get_driver_service,
    get_lifecycle_service,
)
from cargo_dispatch.api.middleware import current_rate_limit, limiter
from cargo_dispatch.api.schemas import (
    CancellationQuoteResponse,
    CancelRequest,
    LaborUpdateRequest,
    OrderCreateRequest,
    OrderResponse,
    PendingOrderResponse,
    RatingRequest,
    RatingResponse,
    StatusHistoryResponse,
    StatusUpdateRequest,
)
from cargo_dispatch.domain.entities import Location, Stop
from cargo_dispatch.services.drivers import DriverService
from cargo_dispatch.services.lifecycle import OrderLifecycleService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "",
    status_code=201,
    response_model=OrderResponse,
    summary="Book a ride or cargo order",
)
@limiter.limit(current_rate_limit)
async def create_order(
    request: Request,
    body: OrderCreateRequest,
    user_id: int = Depends(get_current_user_id),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    return await service.create_order(
        user_id,
        Stop.of(body.pickup.address, body.pickup.latitude, body.pickup.longitude),
        Stop.of(
            body.destination.address,
            body.destination.latitude,
            body.destination.longitude,
        ),
        body.payment_method,
        vehicle_type=body.vehicle_type,
        weight_kg=body.weight_kg,
        labor_count=body.labor_count,
    )


@router.get("", response_model=list[OrderResponse], summary="Caller's orders")
@limiter.limit(current_rate_limit)
async def list_orders(
    request: Request,
    status: Optional[str] = Query(
        None, description="Comma-separated statuses to keep; omit for all."
    ),
    limit: int = Query(10, ge=1),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user_id),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    statuses = [s.strip() for s in status.split(",") if s.strip()] if status else None
    return await service.list_customer_orders(
        user_id, statuses=statuses, limit=limit, offset=offset
    )


@router.get(
    "/pending",
    response_model=list[PendingOrderResponse],
    summary="Requested orders near the calling driver",
)
@limiter.limit(current_rate_limit)
async def list_pending_orders(
    request: Request,
    latitude: float = Query(...),
    longitude: float = Query(...),
    user_id: int = Depends(get_current_user_id),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    return await service.list_pending_orders(user_id, Location(latitude, longitude))


@router.get("/active", response_model=OrderResponse, summary="Caller's active order")
@limiter.limit(current_rate_limit)
async def get_active_order(
    request: Request,
    user_id: int = Depends(get_current_user_id),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    return await service.get_active_order(user_id)


@router.get("/{order_id}", response_model=OrderResponse, summary="Order details")
@limiter.limit(current_rate_limit)
async def get_order(
    request: Request,
    order_id: int,
    user_id: int = Depends(get_current_user_id),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    return await service.get_order(order_id, user_id)


@router.get(
    "/{order_id}/history",
    response_model=list[StatusHistoryResponse],
    summary="Status audit trail",
)
@limiter.limit(current_rate_limit)
async def get_order_history(
    request: Request,
    order_id: int,
    user_id: int = Depends(get_current_user_id),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    return await service.get_order_history(order_id, user_id)


@router.post(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    summary="Cancel an order before it is confirmed",
)
@limiter.limit(current_rate_limit)
async def cancel_order(
    request: Request,
    order_id: int,
    body: Optional[CancelRequest] = None,
    user_id: int = Depends(get_current_user_id),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    reason = body.reason if body is not None else None
    return await service.cancel_order(order_id, user_id, reason)


@router.get(
    "/{order_id}/cancellation-fee",
    response_model=CancellationQuoteResponse,
    summary="Preview the cancellation fee",
)
@limiter.limit(current_rate_limit)
async def get_cancellation_fee(
    request: Request,
    order_id: int,
    user_id: int = Depends(get_current_user_id),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    return await service.quote_cancellation_fee(order_id, user_id)


@router.post(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Advance the order one step",
)
@limiter.limit(current_rate_limit)
async def advance_order_status(
    request: Request,
    order_id: int,
    body: StatusUpdateRequest,
    user_id: int = Depends(get_current_user_id),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    return await service.advance_order_status(order_id, user_id, body.status)


@router.patch(
    "/{order_id}/labor",
    response_model=OrderResponse,
    summary="Correct the labor count and reprice",
)
@limiter.limit(current_rate_limit)
async def update_labor_count(
    request: Request,
    order_id: int,
    body: LaborUpdateRequest,
    user_id: int = Depends(get_current_user_id),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    return await service.update_labor_count(order_id, user_id, body.labor_count)


@router.post(
    "/{order_id}/rating",
    status_code=201,
    response_model=RatingResponse,
    summary="Rate a completed trip",
)
@limiter.limit(current_rate_limit)
async def rate_order(
    request: Request,
    order_id: int,
    body: RatingRequest,
    user_id: int = Depends(get_current_user_id),
    service: DriverService = Depends(get_driver_service),
):
    return await service.rate_order(order_id, user_id, body.rating, body.comment)
