"""Great-circle distance and distance-based surcharge."""

import math

from ...config import FREE_RADIUS_KM, RATE_PER_KM
from ...shared.numbers import round_half_up, to_decimal

EARTH_RADIUS_KM = 6371


def calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Haversine distance between two points in kilometers, rounded to 1 decimal.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    # Float error can push a just past 1 for near-antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return float(round_half_up(EARTH_RADIUS_KM * c, 1))


def calculate_distance_charge(
    distance_km: float, free_radius_km: float = FREE_RADIUS_KM, rate_per_km: float = RATE_PER_KM
) -> int:
    """Free up to the free radius (inclusive), then rate_per_km per km, rounded up."""
    if distance_km <= free_radius_km:
        return 0

    chargeable = to_decimal(distance_km) - to_decimal(free_radius_km)
    return math.ceil(chargeable * to_decimal(rate_per_km))


def format_distance(distance_km: float) -> str:
    """'500 m' below one kilometer, '2.5 km' otherwise."""
    if distance_km < 1:
        return f"{int(round_half_up(distance_km * 1000))} m"
    return f"{round_half_up(distance_km, 1):.1f} km"
