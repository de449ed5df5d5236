"""
locova.engine.geo — Coordinates and great-circle distance
==========================================================

Radius queries first narrow candidates with a lat/lng bounding box (an
index-friendly range filter) and then keep the rows whose haversine
distance is within the radius.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0088

__all__ = ["BoundingBox", "Coordinates", "bounding_box", "haversine_km"]


@dataclass(frozen=True, slots=True)
class Coordinates:
    """A validated latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lng}")

    @classmethod
    def from_optional(cls, lat: float | None, lng: float | None) -> Coordinates | None:
        """Build from a nullable pair; both present or both absent.

        Raises ValueError when only one half is given.
        """
        if lat is None and lng is None:
            return None
        if lat is None or lng is None:
            raise ValueError("Coordinates must have both latitude and longitude")
        return cls(float(lat), float(lng))


@dataclass(frozen=True, slots=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance between *a* and *b* in kilometres."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def bounding_box(center: Coordinates, radius_km: float) -> BoundingBox:
    """Return a box that fully contains the circle around *center*.

    Near the poles the longitude span widens to the full range.
    """
    dlat = math.degrees(radius_km / EARTH_RADIUS_KM)
    min_lat = max(center.lat - dlat, -90.0)
    max_lat = min(center.lat + dlat, 90.0)

    angular = radius_km / EARTH_RADIUS_KM
    cos_lat = math.cos(math.radians(center.lat))
    if max_lat >= 90.0 or min_lat <= -90.0 or math.sin(angular) >= cos_lat:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0)

    # Widest longitude reached by the circle, not the span at its centre latitude.
    dlng = math.degrees(math.asin(math.sin(angular) / cos_lat))
    min_lng, max_lng = center.lng - dlng, center.lng + dlng
    if min_lng < -180.0 or max_lng > 180.0:
        # Circle crosses the antimeridian.
        return BoundingBox(min_lat, max_lat, -180.0, 180.0)
    return BoundingBox(min_lat, max_lat, min_lng, max_lng)
