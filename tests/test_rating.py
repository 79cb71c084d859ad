"""Unit tests for rating validation and aggregation."""

import pytest

from cargo_dispatch.domain.errors import InvalidRating
from cargo_dispatch.domain.rating import average_rating, validate_rating


class TestValidateRating:
    @pytest.mark.parametrize("value", [1, 3, 5])
    def test_accepts_whole_stars(self, value):
        assert validate_rating(value) == value

    @pytest.mark.parametrize("value", [0, 6, 4.5, "5", None, True])
    def test_rejects_everything_else(self, value):
        with pytest.raises(InvalidRating) as exc_info:
            validate_rating(value)
        assert exc_info.value.error_code == "ERR_INVALID_RATING"


class TestAverageRating:
    def test_mean_of_history(self):
        assert average_rating([5, 4, 3]) == 4.0

    def test_rounds_half_up(self):
        assert average_rating([5, 4, 4, 4]) == 4.3  # 4.25

    def test_one_decimal(self):
        assert average_rating([5, 5, 4]) == 4.7

    def test_no_ratings(self):
        assert average_rating([]) is None
