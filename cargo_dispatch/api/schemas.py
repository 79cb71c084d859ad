"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from cargo_dispatch.domain.enums import OrderStatus, PaymentMethod, ServiceType


# ── Requests ──────────────────────────────────────────────────────────


class StopIn(BaseModel):
    address: str = Field(..., max_length=500)
    latitude: float
    longitude: float


class OrderCreateRequest(BaseModel):
    pickup: StopIn
    destination: StopIn
    payment_method: PaymentMethod
    vehicle_type: Optional[str] = Field(
        None,
        max_length=50,
        description="Cargo vehicle type; omit for a plain ride.",
    )
    weight_kg: float = Field(0.0, ge=0)
    labor_count: int = Field(0, ge=0)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class StatusUpdateRequest(BaseModel):
    status: str = Field(..., examples=["accepted", "in_transit"])


class LaborUpdateRequest(BaseModel):
    labor_count: int = Field(..., ge=0)


class RatingRequest(BaseModel):
    # Checked by the engine so a bad value gets ERR_INVALID_RATING
    rating: Any
    comment: Optional[str] = Field(None, max_length=1000)


class PointIn(BaseModel):
    latitude: float
    longitude: float


class PriceCalculationRequest(BaseModel):
    vehicle_type: str = Field(..., max_length=50)
    labor_count: int = Field(0, ge=0)
    distance_km: Optional[float] = Field(None, ge=0)
    pickup: Optional[PointIn] = None
    destination: Optional[PointIn] = None


class AvailabilityRequest(BaseModel):
    is_available: bool


class ApprovalRequest(BaseModel):
    is_approved: bool


class CancellationFeeIn(BaseModel):
    order_status: OrderStatus
    fee_percentage: float
    is_active: bool = True
    description: Optional[str] = Field(None, max_length=255)


class VehiclePricingIn(BaseModel):
    vehicle_type: str = Field(..., max_length=50)
    base_price: float
    price_per_km: float
    labor_price: float = 0.0
    is_active: bool = True


# ── Responses ─────────────────────────────────────────────────────────


class OrderResponse(BaseModel):
    id: int
    customer_id: int
    driver_id: Optional[int] = None
    status: OrderStatus
    service_type: ServiceType
    vehicle_type: Optional[str] = None
    payment_method: PaymentMethod

    pickup_address: str
    pickup_lat: float
    pickup_lng: float
    destination_address: str
    destination_lat: float
    destination_lng: float
    distance_km: float
    duration_minutes: int
    weight_kg: float
    labor_count: int

    base_price: float
    distance_price: float
    labor_price: float
    total_price: float
    final_price: Optional[float] = None

    requested_at: datetime
    accepted_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    cancellation_fee: Optional[float] = None

    model_config = {"from_attributes": True}


class PendingOrderResponse(BaseModel):
    order: OrderResponse
    distance_to_pickup_km: float
    estimated_arrival_minutes: int

    model_config = {"from_attributes": True}


class StatusHistoryResponse(BaseModel):
    id: int
    old_status: Optional[str] = None
    new_status: str
    changed_by_user_id: Optional[int] = None
    description: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CancellationQuoteResponse(BaseModel):
    order_id: int
    status: OrderStatus
    total_price: float
    fee_percentage: float
    fee: float
    cancellable: bool
    has_fee: bool

    model_config = {"from_attributes": True}


class RatingResponse(BaseModel):
    id: int
    order_id: int
    driver_id: Optional[int] = None
    rating: int
    comment: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class DriverResponse(BaseModel):
    id: int
    user_id: int
    vehicle_type: Optional[str] = None
    vehicle_plate: Optional[str] = None
    is_available: bool
    is_approved: bool
    current_order_id: Optional[int] = None
    rating: float
    total_trips: int

    model_config = {"from_attributes": True}


class FareBreakdownResponse(BaseModel):
    base_price: float
    distance_price: float
    labor_price: float
    total: float

    model_config = {"from_attributes": True}


class PriceCalculationResponse(BaseModel):
    vehicle_type: str
    distance_km: float
    labor_count: int
    duration_minutes: int
    breakdown: FareBreakdownResponse

    model_config = {"from_attributes": True}


class CancellationFeeResponse(BaseModel):
    id: int
    order_status: str
    fee_percentage: float
    is_active: bool
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class VehiclePricingResponse(BaseModel):
    id: int
    vehicle_type: str
    base_price: float
    price_per_km: float
    labor_price: float
    is_active: bool

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"
    database: str = "ok"
