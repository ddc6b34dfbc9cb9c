"""
Travel time estimation
connected_capacity/scheduling/travel.py

Straight-line (haversine) distance at urban driving speed plus a fixed
parking/walking allowance.
"""

import math

from connected_capacity.models.scheduling import GeoPoint

EARTH_RADIUS_KM = 6371.0
AVG_SPEED_KMH = 25.0
BASE_MINUTES = 8
MIN_MINUTES = 10
MAX_MINUTES = 60
SAME_LOCATION_KM = 0.5


def haversine_km(origin: GeoPoint, destination: GeoPoint) -> float:
    d_lat = math.radians(destination.lat - origin.lat)
    d_lng = math.radians(destination.lng - origin.lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(origin.lat)) * math.cos(math.radians(destination.lat)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def estimate_travel_minutes(origin: GeoPoint, destination: GeoPoint) -> int:
    """Whole minutes, rounded up and clamped to [10, 60]."""
    distance = haversine_km(origin, destination)
    if distance < SAME_LOCATION_KM:
        return MIN_MINUTES
    total = distance / AVG_SPEED_KMH * 60 + BASE_MINUTES
    return min(MAX_MINUTES, max(MIN_MINUTES, math.ceil(total)))
