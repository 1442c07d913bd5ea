"""Unit tests for bounds validation and east-west compensation."""

from __future__ import annotations

import math

import pytest

from frustumbuilder.exceptions import ValidationError
from frustumbuilder.geodesy import compensate_bounds, validate_bounds
from frustumbuilder.models import Bounds


def _expected_compensation(bounds: Bounds) -> float:
    average_latitude = abs(bounds.bottom + bounds.top) / 2
    distance = abs(bounds.right - bounds.left)
    return (distance - distance * math.cos(math.radians(average_latitude))) / 2


class TestCompensateBounds:
    """Closed-form correction of the longitude span."""

    def test_matches_formula(self) -> None:
        raw = Bounds(top=47.33, left=0.0, bottom=47.13, right=10.0)
        corrected = compensate_bounds(raw)
        compensation = _expected_compensation(raw)
        assert corrected.left == pytest.approx(raw.left + compensation)
        assert corrected.right == pytest.approx(raw.right - compensation)

    def test_width_scales_by_cosine(self) -> None:
        raw = Bounds(top=47.33, left=0.0, bottom=47.13, right=10.0)
        corrected = compensate_bounds(raw)
        assert corrected.width == pytest.approx(10.0 * math.cos(math.radians(47.23)))

    def test_latitudes_untouched(self) -> None:
        raw = Bounds(top=47.327618, left=9.295821, bottom=47.126480, right=9.621767)
        corrected = compensate_bounds(raw)
        assert corrected.top == raw.top
        assert corrected.bottom == raw.bottom

    def test_equator_is_unchanged(self) -> None:
        raw = Bounds(top=1.0, left=10.0, bottom=-1.0, right=20.0)
        corrected = compensate_bounds(raw)
        assert corrected.left == pytest.approx(10.0)
        assert corrected.right == pytest.approx(20.0)

    def test_not_idempotent_away_from_equator(self) -> None:
        raw = Bounds(top=47.33, left=0.0, bottom=47.13, right=10.0)
        once = compensate_bounds(raw)
        twice = compensate_bounds(once)
        assert twice.width < once.width

    def test_southern_hemisphere_uses_absolute_latitude(self) -> None:
        north = compensate_bounds(Bounds(top=40.0, left=0.0, bottom=30.0, right=4.0))
        south = compensate_bounds(Bounds(top=-30.0, left=0.0, bottom=-40.0, right=4.0))
        assert north.width == pytest.approx(south.width)


class TestValidateBounds:
    """Coordinate ranges and ordering."""

    def test_valid_bounds(self) -> None:
        bounds = validate_bounds(47.3, 9.2, 47.1, 9.6)
        assert bounds == Bounds(top=47.3, left=9.2, bottom=47.1, right=9.6)

    @pytest.mark.parametrize(
        ("top", "left", "bottom", "right", "direction"),
        [
            (80.5, 0.0, 0.0, 1.0, "top"),
            (0.0, 0.0, -81.0, 1.0, "bottom"),
            (1.0, -180.1, 0.0, 1.0, "left"),
            (1.0, 0.0, 0.0, 181.0, "right"),
        ],
    )
    def test_out_of_range(self, top, left, bottom, right, direction) -> None:
        with pytest.raises(ValidationError, match=f"The {direction} coordinate"):
            validate_bounds(top, left, bottom, right)

    def test_bottom_above_top(self) -> None:
        with pytest.raises(ValidationError, match="bottom coordinate is higher"):
            validate_bounds(10.0, 0.0, 11.0, 1.0)

    def test_left_right_of_right(self) -> None:
        with pytest.raises(ValidationError, match="left coordinate"):
            validate_bounds(10.0, 2.0, 9.0, 1.0)

    def test_nan_rejected(self) -> None:
        with pytest.raises(ValidationError):
            validate_bounds(float("nan"), 0.0, 0.0, 1.0)

    def test_limits_are_inclusive(self) -> None:
        bounds = validate_bounds(80.0, -180.0, -80.0, 180.0)
        assert bounds.top == 80.0
