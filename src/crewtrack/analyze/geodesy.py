# crewtrack/analyze/geodesy.py
"""
Great-circle helpers shared by the track geometry and course mapping.
"""

from __future__ import annotations

import math

from haversine import haversine, Unit

# Course distances are quoted against a 6371 km sphere.
EARTH_RADIUS_KM = 6371.0


def distance_km(a, b) -> float:
    """Haversine distance in km between two objects with .lat/.lon (degrees)."""
    return EARTH_RADIUS_KM * haversine((a.lat, a.lon), (b.lat, b.lon), unit=Unit.RADIANS)


def bearing_degrees(a, b) -> float:
    """
    Initial compass bearing from a to b in [0, 360).

    0 = North, 90 = East. Identical points give 0.
    """
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    d_lon = math.radians(b.lon - a.lon)
    x = math.sin(d_lon) * math.cos(lat2)
    y = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lon)
    bearing = math.degrees(math.atan2(x, y))
    if bearing < 0:
        bearing += 360.0
    # tiny negative angles round up to exactly 360.0
    return 0.0 if bearing >= 360.0 else bearing
