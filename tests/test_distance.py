"""Unit tests for distance and duration estimates."""

import pytest

from cargo_dispatch.domain.distance import (
    distance_between,
    estimate_duration_minutes,
    haversine_km,
)
from cargo_dispatch.domain.entities import Location


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(41.0, 29.0, 41.0, 29.0) == 0.0

    def test_one_degree_of_latitude(self):
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, abs=0.01)

    def test_symmetric(self):
        assert haversine_km(41.0, 29.0, 41.05, 29.05) == pytest.approx(
            haversine_km(41.05, 29.05, 41.0, 29.0)
        )

    def test_istanbul_sample_trip(self):
        assert haversine_km(41.0, 29.0, 41.05, 29.05) == pytest.approx(6.96, abs=0.02)


class TestDuration:
    def test_rounds_up_to_whole_minutes(self):
        assert estimate_duration_minutes(6.96) == 14

    def test_exact_half_hour(self):
        assert estimate_duration_minutes(15.0) == 30

    def test_custom_speed(self):
        assert estimate_duration_minutes(60.0, average_speed_kmh=60.0) == 60


class TestDistanceBetween:
    def test_matches_haversine(self):
        a, b = Location(41.0, 29.0), Location(41.05, 29.05)
        assert distance_between(a, b) == pytest.approx(haversine_km(41.0, 29.0, 41.05, 29.05))
