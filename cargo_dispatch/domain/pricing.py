"""
Fare Calculator  (Strategy Pattern)
===================================

Two commercial products are priced differently and must stay separate:

* **CargoPricing** -- the vehicle-type base price is a *floor*::

      total = max(base_price, distance_km x price_per_km + labor_count x labor_price)

  When the variable cost clears the floor, the base price is not added.

* **RidePricing** -- the legacy ride tariff, base price is *additive*::

      total = max(base_price + distance_km x price_per_km, min_price)

All amounts are rounded to 2 decimals.  Complexity: O(1) per calculation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .enums import ServiceType


@dataclass(frozen=True)
class VehiclePricing:
    """Per-vehicle-type tariff as maintained by the back office."""

    base_price: float
    price_per_km: float
    labor_price: float = 0.0
    min_price: float = 0.0


@dataclass(frozen=True)
class FareBreakdown:
    base_price: float
    distance_price: float
    labor_price: float
    total: float


# ── Strategy hierarchy ────────────────────────────────────────────────


class FareStrategy(ABC):
    service_type: ServiceType

    @abstractmethod
    def calculate(
        self, distance_km: float, labor_count: int, pricing: VehiclePricing
    ) -> FareBreakdown: ...


class CargoPricing(FareStrategy):
    service_type = ServiceType.CARGO

    def calculate(
        self, distance_km: float, labor_count: int, pricing: VehiclePricing
    ) -> FareBreakdown:
        distance_price = round(pricing.price_per_km * distance_km, 2)
        labor_price = round(pricing.labor_price * labor_count, 2)
        variable = round(distance_price + labor_price, 2)

        if variable < pricing.base_price:
            return FareBreakdown(
                base_price=pricing.base_price,
                distance_price=distance_price,
                labor_price=labor_price,
                total=round(pricing.base_price, 2),
            )
        return FareBreakdown(
            base_price=0.0,
            distance_price=distance_price,
            labor_price=labor_price,
            total=variable,
        )


class RidePricing(FareStrategy):
    """Labor is not part of the ride product and is ignored."""

    service_type = ServiceType.RIDE

    def calculate(
        self, distance_km: float, labor_count: int, pricing: VehiclePricing
    ) -> FareBreakdown:
        distance_price = round(pricing.price_per_km * distance_km, 2)
        total = max(pricing.base_price + distance_price, pricing.min_price)
        return FareBreakdown(
            base_price=pricing.base_price,
            distance_price=distance_price,
            labor_price=0.0,
            total=round(total, 2),
        )


STRATEGIES: dict[ServiceType, FareStrategy] = {
    ServiceType.CARGO: CargoPricing(),
    ServiceType.RIDE: RidePricing(),
}


def compute_fare(
    service_type: ServiceType,
    distance_km: float,
    labor_count: int,
    pricing: VehiclePricing,
) -> FareBreakdown:
    if distance_km < 0 or labor_count < 0:
        raise ValueError("distance and labor count must be non-negative")
    return STRATEGIES[service_type].calculate(distance_km, labor_count, pricing)
