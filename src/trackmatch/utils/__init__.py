"""Utility functions for the matching pipeline."""

from .logging import get_logger, set_level
from .config import load_config
from .geodesy import EARTH_RADIUS_M, haversine_distance, slant_range

__all__ = ["get_logger", "set_level", "load_config", "EARTH_RADIUS_M", "haversine_distance", "slant_range"]
