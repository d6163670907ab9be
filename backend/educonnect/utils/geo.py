"""Great-circle distance helpers for geolocated deals."""

from __future__ import annotations

from math import atan2, cos, radians, sin, sqrt
from typing import Iterable, Mapping, Optional

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the distance in kilometers between two points, rounded to 0.1 km."""
    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)
    a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 1)


def location_of(entity: Mapping) -> Optional[Mapping]:
    loc = entity.get("location")
    if not isinstance(loc, Mapping):
        return None
    if loc.get("latitude") is None or loc.get("longitude") is None:
        return None
    return loc


def annotate_distances(entities: Iterable[Mapping], latitude: float, longitude: float) -> list[dict]:
    """Return copies of `entities` with `distance` set from the given point.

    Entities without a usable `location` are copied unchanged (any stale
    `distance` is kept, matching the last known value).
    """
    out = []
    for entity in entities:
        item = dict(entity)
        loc = location_of(item)
        if loc is not None:
            item["distance"] = haversine_km(latitude, longitude, loc["latitude"], loc["longitude"])
        out.append(item)
    return out
