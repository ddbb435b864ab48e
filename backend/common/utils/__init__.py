"""Common utility functions."""

from .geo import calculate_distance, EARTH_RADIUS_KM

__all__ = [
    "calculate_distance",
    "EARTH_RADIUS_KM",
]
