"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Transaction boundaries belong to the caller.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    CancellationFeeModel,
    DriverModel,
    OrderModel,
    OrderStatusHistoryModel,
    TripRatingModel,
    VehicleTypePricingModel,
)
from cargo_dispatch.domain.cancellation import CancellationFeeRule
from cargo_dispatch.domain.distance import EARTH_RADIUS_KM, haversine_km
from cargo_dispatch.domain.enums import ACTIVE_STATUSES, OrderStatus
from cargo_dispatch.domain.lifecycle import utcnow
from cargo_dispatch.domain.pricing import VehiclePricing


class OrderRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, order: OrderModel) -> OrderModel:
        self.session.add(order)
        await self.session.flush()
        return order

    async def get_by_id(
        self, order_id: int, *, for_update: bool = False
    ) -> Optional[OrderModel]:
        return await self.session.get(
            OrderModel, order_id, with_for_update=for_update or None
        )

    async def get_active_for_customer(self, customer_id: int) -> Optional[OrderModel]:
        result = await self.session.execute(
            select(OrderModel)
            .where(
                OrderModel.customer_id == customer_id,
                OrderModel.status.in_(ACTIVE_STATUSES),
            )
            .order_by(OrderModel.requested_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_customer(
        self,
        customer_id: int,
        *,
        statuses: Optional[Iterable[OrderStatus]] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[OrderModel]:
        query = select(OrderModel).where(OrderModel.customer_id == customer_id)
        if statuses:
            query = query.where(OrderModel.status.in_(list(statuses)))
        result = await self.session.execute(
            query.order_by(OrderModel.requested_at.desc(), OrderModel.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def list_requested_near(
        self, latitude: float, longitude: float, radius_km: float, limit: int
    ) -> list[tuple[OrderModel, float]]:
        """
        Open ``requested`` orders whose pickup lies within *radius_km*.

        A lat/lng bounding box narrows the rows in SQL; the exact haversine
        distance filters and orders them (nearest first, then oldest).
        """
        lat_delta = math.degrees(radius_km / EARTH_RADIUS_KM)
        cos_lat = math.cos(math.radians(latitude))
        lng_delta = 180.0 if cos_lat < 1e-6 else min(180.0, lat_delta / cos_lat)

        query = select(OrderModel).where(
            OrderModel.status == OrderStatus.REQUESTED,
            OrderModel.pickup_lat.between(latitude - lat_delta, latitude + lat_delta),
        )
        # No longitude bound when the box would cross the antimeridian
        if -180.0 <= longitude - lng_delta and longitude + lng_delta <= 180.0:
            query = query.where(
                OrderModel.pickup_lng.between(longitude - lng_delta, longitude + lng_delta)
            )
        result = await self.session.execute(query)

        nearby = []
        for order in result.scalars().all():
            distance = haversine_km(latitude, longitude, order.pickup_lat, order.pickup_lng)
            if distance <= radius_km:
                nearby.append((order, distance))
        nearby.sort(key=lambda pair: (pair[1], pair[0].requested_at, pair[0].id))
        return nearby[:limit]

        return result.scalar_one_or_none()

    async def add_history(
        self,
        order_id: int,
        old_status: Optional[OrderStatus],
        new_status: OrderStatus,
        changed_by: Optional[int],
        description: Optional[str] = None,
    ) -> OrderStatusHistoryModel:
        entry = OrderStatusHistoryModel(
            order_id=order_id,
            old_status=old_status.value if old_status else None,
            new_status=new_status.value,
            changed_by_user_id=changed_by,
            description=description,
            created_at=utcnow(),
        )
        self.session.add(entry)
        return entry

    async def get_history(self, order_id: int) -> list[OrderStatusHistoryModel]:
        result = await self.session.execute(
            select(OrderStatusHistoryModel)
            .where(OrderStatusHistoryModel.order_id == order_id)
            .order_by(OrderStatusHistoryModel.id)
        )
        return list(result.scalars().all())


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(
        self, driver_id: int, *, for_update: bool = False
    ) -> Optional[DriverModel]:
        return await self.session.get(
            DriverModel, driver_id, with_for_update=for_update or None
        )

    async def get_by_user_id(self, user_id: int) -> Optional[DriverModel]:
        result = await self.session.execute(
            select(DriverModel).where(DriverModel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def try_bind(self, driver_id: int, order_id: int) -> bool:
        """
        Compare-and-swap the driver onto *order_id*.

        Succeeds only while the driver is approved, available and unbound;
        a concurrent binder sees zero affected rows.
        """
        result = await self.session.execute(
            update(DriverModel)
            .where(
                DriverModel.id == driver_id,
                DriverModel.current_order_id.is_(None),
                DriverModel.is_available.is_(True),
                DriverModel.is_approved.is_(True),
            )
            .values(current_order_id=order_id, is_available=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def release(
        self, driver_id: int, order_id: int, *, completed: bool = False
    ) -> bool:
        """Free the driver from *order_id*; a completed trip also counts."""
        values = {"current_order_id": None, "is_available": True}
        if completed:
            values["total_trips"] = DriverModel.total_trips + 1
        result = await self.session.execute(
            update(DriverModel)
            .where(
                DriverModel.id == driver_id,
                DriverModel.current_order_id == order_id,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_available(self, driver_id: int, available: bool) -> bool:
        """Driver's own toggle; going online is refused while bound."""
        query = update(DriverModel).where(DriverModel.id == driver_id)
        if available:
            query = query.where(DriverModel.current_order_id.is_(None))
        result = await self.session.execute(
            query.values(is_available=available).execution_options(
                synchronize_session=False
            )
        )
        return result.rowcount == 1

    async def set_rating(self, driver_id: int, rating: float) -> None:
        await self.session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver_id)
            .values(rating=rating)
            .execution_options(synchronize_session=False)
        )


class RatingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_order(self, order_id: int) -> Optional[TripRatingModel]:
        result = await self.session.execute(
            select(TripRatingModel).where(TripRatingModel.order_id == order_id)
        )
        return result.scalar_one_or_none()

    async def create(self, rating: TripRatingModel) -> TripRatingModel:
        self.session.add(rating)
        await self.session.flush()
        return rating

    async def ratings_for_driver(self, driver_id: int) -> list[int]:
        result = await self.session.execute(
            select(TripRatingModel.rating).where(TripRatingModel.driver_id == driver_id)
        )
        return list(result.scalars().all())


class PricingRepository:
    """Back-office tables: vehicle tariffs and the cancellation fee policy."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_vehicle_pricing(self, vehicle_type: str) -> Optional[VehiclePricing]:
        result = await self.session.execute(
            select(VehicleTypePricingModel).where(
                VehicleTypePricingModel.vehicle_type == vehicle_type,
                VehicleTypePricingModel.is_active.is_(True),
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return VehiclePricing(
            base_price=row.base_price,
            price_per_km=row.price_per_km,
            labor_price=row.labor_price,
        )

    async def list_vehicle_pricing(self) -> list[VehicleTypePricingModel]:
        result = await self.session.execute(
            select(VehicleTypePricingModel).order_by(VehicleTypePricingModel.vehicle_type)
        )
        return list(result.scalars().all())

    async def upsert_vehicle_pricing(
        self,
        vehicle_type: str,
        *,
        base_price: float,
        price_per_km: float,
        labor_price: float,
        is_active: bool = True,
    ) -> VehicleTypePricingModel:
        result = await self.session.execute(
            select(VehicleTypePricingModel).where(
                VehicleTypePricingModel.vehicle_type == vehicle_type
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = VehicleTypePricingModel(vehicle_type=vehicle_type)
            self.session.add(row)
        row.base_price = base_price
        row.price_per_km = price_per_km
        row.labor_price = labor_price
        row.is_active = is_active
        await self.session.flush()
        return row

    async def get_fee_table(self) -> dict[OrderStatus, CancellationFeeRule]:
        result = await self.session.execute(select(CancellationFeeModel))
        table: dict[OrderStatus, CancellationFeeRule] = {}
        for row in result.scalars().all():
            try:
                status = OrderStatus(row.order_status)
            except ValueError:
                continue  # rows for statuses this engine does not know
            table[status] = CancellationFeeRule(
                status=status,
                fee_percentage=row.fee_percentage,
                is_active=row.is_active,
                description=row.description,
            )
        return table

    async def list_fee_rows(self) -> list[CancellationFeeModel]:
        result = await self.session.execute(
            select(CancellationFeeModel).order_by(CancellationFeeModel.id)
        )
        return list(result.scalars().all())

    async def upsert_fee_rule(self, rule: CancellationFeeRule) -> CancellationFeeModel:
        result = await self.session.execute(
            select(CancellationFeeModel).where(
                CancellationFeeModel.order_status == rule.status.value
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = CancellationFeeModel(order_status=rule.status.value)
            self.session.add(row)
        row.fee_percentage = rule.fee_percentage
        row.is_active = rule.is_active
        row.description = rule.description
        await self.session.flush()
        return row
