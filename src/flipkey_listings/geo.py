"""Great-circle distance helpers."""

from __future__ import annotations

import math

from geopy import units

EARTH_RADIUS_MILES = 3958.8


def distance_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Return the haversine distance in miles between two points."""

    d_lat = units.radians(degrees=lat2 - lat1)
    d_lng = units.radians(degrees=lng2 - lng1)
    phi1 = units.radians(degrees=lat1)
    phi2 = units.radians(degrees=lat2)
    a = math.sin(d_lat / 2) ** 2 + math.sin(d_lng / 2) ** 2 * math.cos(phi1) * math.cos(phi2)
    return EARTH_RADIUS_MILES * 2 * math.asin(math.sqrt(min(1.0, a)))
