"""
Trip distance and duration estimates.

Orders are priced on great-circle (Haversine) distance, not road distance;
the customer sees the same figure the fare calculator is fed.  The duration
is informational only and never billed.
"""

import math

from .entities import Location

EARTH_RADIUS_KM = 6_371.0
AVERAGE_SPEED_KMH = 30.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    half_dphi = math.radians(lat2 - lat1) / 2
    half_dlambda = math.radians(lng2 - lng1) / 2

    h = math.sin(half_dphi) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(half_dlambda) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distance_between(origin: Location, target: Location) -> float:
    return haversine_km(origin.latitude, origin.longitude, target.latitude, target.longitude)


def estimate_duration_minutes(
    distance_km: float, average_speed_kmh: float = AVERAGE_SPEED_KMH
) -> int:
    """Whole minutes at the configured average speed, rounded up."""
    return math.ceil(distance_km / average_speed_kmh * 60)
