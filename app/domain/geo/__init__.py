from .distance import calculate_distance, calculate_distance_charge, format_distance
from .schemas import Location

__all__ = ["Location", "calculate_distance", "calculate_distance_charge", "format_distance"]
