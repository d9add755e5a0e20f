"""
Franchise Geofence — which service areas contain a customer, and what delivery costs.

  1. Ray-casting parity test over each franchise polygon (lng = x, lat = y)
  2. Great-circle distance to the franchise's first polygon vertex
  3. Free within free_delivery_radius, then charge_per_extra_km beyond it
"""

from __future__ import annotations
import math
from dataclasses import dataclass

from models import Franchise
from services.errors import NoFranchiseAvailable


EARTH_RADIUS_M = 6378137  # WGS-84 equatorial radius


@dataclass
class FranchiseMatch:
    franchise: Franchise
    distance_km: float
    charge: float


def point_in_polygon(lat: float, lng: float, polygon: list[dict]) -> bool:
    """
    Even-odd ray casting. The ring is closed implicitly (last → first).

    Args:
        lat, lng: Query point
        polygon: Ordered [{"lat": float, "lng": float}, ...]
    """
    inside = False
    n = len(polygon)
    for i in range(n):
        y1, x1 = float(polygon[i]["lat"]), float(polygon[i]["lng"])
        y2, x2 = float(polygon[(i + 1) % n]["lat"]), float(polygon[(i + 1) % n]["lng"])

        if (y1 > lat) != (y2 > lat):
            x_cross = (x2 - x1) * (lat - y1) / (y2 - y1) + x1
            if lng < x_cross:
                inside = not inside
    return inside


def great_circle_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in km, rounded to whole metres first."""
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(dlng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_M * c) / 1000


def delivery_charge(distance_km: float, free_radius_km: float, charge_per_extra_km: float) -> float:
    if distance_km <= free_radius_km:
        return 0.0
    return (distance_km - free_radius_km) * charge_per_extra_km


def match_franchise(lat: float, lng: float, franchise: Franchise) -> FranchiseMatch | None:
    polygon = franchise.polygon_coordinates or []
    if len(polygon) < 3 or not point_in_polygon(lat, lng, polygon):
        return None

    anchor = polygon[0]
    distance = great_circle_km(lat, lng, float(anchor["lat"]), float(anchor["lng"]))
    charge = delivery_charge(
        distance,
        float(franchise.free_delivery_radius),
        float(franchise.charge_per_extra_km),
    )
    return FranchiseMatch(franchise=franchise, distance_km=distance, charge=charge)


def resolve_franchises(lat: float, lng: float, franchises: list[Franchise]) -> list[FranchiseMatch]:
    """
    All franchises whose service area contains the point, in input order.

    Overlapping areas are all returned; no precedence is applied.
    Raises NoFranchiseAvailable when nothing matches.
    """
    matches = []
    for franchise in franchises:
        match = match_franchise(lat, lng, franchise)
        if match is not None:
            matches.append(match)

    if not matches:
        raise NoFranchiseAvailable("No available franchises for this location")
    return matches
