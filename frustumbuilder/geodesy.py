"""Bounding-box validation and east-west distortion compensation."""

import math
import logging

from .constants import MAX_LATITUDE, MAX_LONGITUDE
from .exceptions import ValidationError
from .models import Bounds

logger = logging.getLogger(__name__)


def _validate_coordinate(direction: str, coordinate: float, maximum: float) -> None:
    if math.isnan(coordinate) or abs(coordinate) > maximum:
        raise ValidationError(
            f"The {direction} coordinate must not exceed {maximum:g}.",
            stage="bounds")


def validate_bounds(top: float, left: float, bottom: float, right: float) -> Bounds:
    """Check coordinate ranges and ordering; return the raw ``Bounds``."""
    _validate_coordinate("top", top, MAX_LATITUDE)
    _validate_coordinate("bottom", bottom, MAX_LATITUDE)
    _validate_coordinate("left", left, MAX_LONGITUDE)
    _validate_coordinate("right", right, MAX_LONGITUDE)

    if bottom > top:
        raise ValidationError(
            "The bottom coordinate is higher than the top coordinate.",
            stage="bounds")
    if left > right:
        raise ValidationError(
            "The left coordinate is farther right than the right coordinate.",
            stage="bounds")

    return Bounds(top=top, left=left, bottom=bottom, right=right)


def compensate_bounds(bounds: Bounds) -> Bounds:
    """Narrow the box so its grid spacing is roughly uniform in metres.

    A degree of longitude shrinks by cos(latitude). The width is reduced
    symmetrically by ``distance - distance / sec(average_latitude)``.
    """
    average_latitude = abs(bounds.bottom + bounds.top) / 2.0
    factor = 1.0 / math.cos(math.radians(average_latitude))
    distance = abs(bounds.right - bounds.left)
    compensation = (distance - distance / factor) / 2.0

    logger.debug(f"Compensating bounds at latitude {average_latitude:.4f}: "
                 f"{compensation:.6f} degrees per side")

    return Bounds(top=bounds.top,
                  left=bounds.left + compensation,
                  bottom=bounds.bottom,
                  right=bounds.right - compensation)
