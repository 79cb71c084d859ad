"""Fare preview and the back-office pricing / cancellation-fee tables."""

from __future__ import annotations

import logging
from typing import Iterable

from .base import EngineService
from cargo_dispatch.domain.cancellation import CancellationFeeRule, validate_rule
from cargo_dispatch.domain.distance import distance_between, estimate_duration_minutes
from cargo_dispatch.domain.entities import Location
from cargo_dispatch.domain.enums import ServiceType
from cargo_dispatch.domain.errors import InvalidInput, NotFound
from cargo_dispatch.domain.pricing import FareBreakdown, compute_fare
from cargo_dispatch.infrastructure.database import transaction
from cargo_dispatch.infrastructure.models import (
    CancellationFeeModel,
    VehicleTypePricingModel,
)
from cargo_dispatch.infrastructure.repositories import PricingRepository

logger = logging.getLogger(__name__)


class FareQuote:
    def __init__(
        self,
        vehicle_type: str,
        distance_km: float,
        labor_count: int,
        breakdown: FareBreakdown,
        duration_minutes: int,
    ):
        self.vehicle_type = vehicle_type
        self.distance_km = distance_km
        self.labor_count = labor_count
        self.breakdown = breakdown
        self.duration_minutes = duration_minutes


class PricingService(EngineService):
    async def quote_fare(
        self, distance_km: float, labor_count: int, vehicle_type: str
    ) -> FareQuote:
        """Cargo price preview; nothing is stored."""
        if distance_km is None or not 0 <= distance_km <= self.settings.max_distance_km:
            raise InvalidInput(
                f"Distance must be between 0 and {self.settings.max_distance_km:g} km",
                {"distance_km": distance_km},
            )
        if (
            isinstance(labor_count, bool)
            or not isinstance(labor_count, int)
            or not 0 <= labor_count <= self.settings.max_labor_count
        ):
            raise InvalidInput(
                f"Labor count must be between 0 and {self.settings.max_labor_count}",
                {"labor_count": labor_count},
            )
        if not vehicle_type or not vehicle_type.strip():
            raise InvalidInput("Vehicle type is required")

        async with transaction(self.session_factory) as session:
            pricing = await PricingRepository(session).get_vehicle_pricing(vehicle_type)
        if pricing is None:
            raise NotFound("Pricing for vehicle type", vehicle_type)

        breakdown = compute_fare(ServiceType.CARGO, distance_km, labor_count, pricing)
        return FareQuote(
            vehicle_type=vehicle_type,
            distance_km=round(distance_km, 2),
            labor_count=labor_count,
            breakdown=breakdown,
            duration_minutes=estimate_duration_minutes(
                distance_km, self.settings.average_speed_kmh
            ),
        )

    async def quote_fare_between(
        self,
        pickup: Location,
        destination: Location,
        labor_count: int,
        vehicle_type: str,
    ) -> FareQuote:
        pickup.validate("Pickup")
        destination.validate("Destination")
        return await self.quote_fare(
            distance_between(pickup, destination), labor_count, vehicle_type
        )

    # ── Cancellation fee policy ──────────────────────────────────────

    async def list_fee_rules(self) -> list[CancellationFeeModel]:
        async with transaction(self.session_factory) as session:
            return await PricingRepository(session).list_fee_rows()

    async def upsert_fee_rules(
        self, rules: Iterable[CancellationFeeRule]
    ) -> list[CancellationFeeModel]:
        """
        Create or update the given rows; statuses not listed keep their row.

        Every row is validated before anything is written.
        """
        rules = list(rules)
        for rule in rules:
            try:
                validate_rule(rule)
            except ValueError as exc:
                raise InvalidInput(
                    str(exc),
                    {"status": rule.status.value, "fee_percentage": rule.fee_percentage},
                ) from exc

        async with transaction(self.session_factory) as session:
            repo = PricingRepository(session)
            for rule in rules:
                await repo.upsert_fee_rule(rule)
            rows = await repo.list_fee_rows()
            for row in rows:
                await session.refresh(row)

        logger.info("cancellation_fees_updated: rows=%s", len(rules))
        return rows

    # ── Vehicle tariffs ──────────────────────────────────────────────

    async def list_vehicle_pricing(self) -> list[VehicleTypePricingModel]:
        async with transaction(self.session_factory) as session:
            return await PricingRepository(session).list_vehicle_pricing()

    async def upsert_vehicle_pricing(
        self,
        vehicle_type: str,
        *,
        base_price: float,
        price_per_km: float,
        labor_price: float = 0.0,
        is_active: bool = True,
    ) -> VehicleTypePricingModel:
        if not vehicle_type or not vehicle_type.strip():
            raise InvalidInput("Vehicle type is required")
        for name, value in (
            ("base_price", base_price),
            ("price_per_km", price_per_km),
            ("labor_price", labor_price),
        ):
            if value is None or value < 0:
                raise InvalidInput(f"{name} cannot be negative", {name: value})

        async with transaction(self.session_factory) as session:
            row = await PricingRepository(session).upsert_vehicle_pricing(
                vehicle_type.strip(),
                base_price=base_price,
                price_per_km=price_per_km,
                labor_price=labor_price,
                is_active=is_active,
            )
            await session.refresh(row)

        logger.info(
            "vehicle_pricing_updated: type=%s base=%s per_km=%s labor=%s active=%s",
            row.vehicle_type,
            base_price,
            price_per_km,
            labor_price,
            is_active,
        )
        return row
