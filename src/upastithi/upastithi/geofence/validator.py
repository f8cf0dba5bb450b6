from __future__ import annotations

import math
from typing import Any, Mapping, Optional

from ..core.constants import EARTH_RADIUS_M, MAX_GEOFENCE_RADIUS_M, MIN_GEOFENCE_RADIUS_M
from ..core.exceptions import InvalidGeofenceError, ValidationError
from .model import GeoPoint, Geofence


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points (haversine)."""
    phi1, phi2 = math.radians(a.lat), math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlambda = math.radians(b.lon - a.lon)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # Rounding can push h a hair outside [0, 1] for antipodal points.
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def is_within(point: GeoPoint, geofence: Geofence) -> bool:
    """True iff ``point`` lies inside (or on the edge of) the geofence circle.

    This is the single containment predicate: the check-in path uses it to
    decide presence, and reviewers use it on a failed attempt's location.
    """
    return distance_meters(point, geofence.center) <= geofence.radius


def _coordinate(value: Any, field_name: str, limit: float, error: type) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise error(f"{field_name} must be a number")
    if math.isnan(v) or v < -limit or v > limit:
        raise error(f"{field_name} must be between {-limit:g} and {limit:g}")
    return v


def validate_point(point: GeoPoint) -> GeoPoint:
    lat = _coordinate(point.lat, "Latitude", 90, ValidationError)
    lon = _coordinate(point.lon, "Longitude", 180, ValidationError)
    return GeoPoint(lat=lat, lon=lon, accuracy=point.accuracy)


def validate_geofence(geofence: Geofence) -> Geofence:
    lat = _coordinate(geofence.lat, "Geofence latitude", 90, InvalidGeofenceError)
    lon = _coordinate(geofence.lon, "Geofence longitude", 180, InvalidGeofenceError)
    try:
        radius = float(geofence.radius)
    except (TypeError, ValueError):
        raise InvalidGeofenceError("Geofence radius must be a number")
    if math.isnan(radius) or radius < MIN_GEOFENCE_RADIUS_M or radius > MAX_GEOFENCE_RADIUS_M:
        raise InvalidGeofenceError(
            f"Geofence radius must be between {MIN_GEOFENCE_RADIUS_M} and {MAX_GEOFENCE_RADIUS_M} meters"
        )
    return Geofence(lat=lat, lon=lon, radius=radius)


def point_from_mapping(data: Optional[Mapping[str, Any]]) -> Optional[GeoPoint]:
    """Build a point from ``{"lat": .., "lon": ..}``; None when absent."""
    if not data:
        return None
    if "lat" not in data or "lon" not in data:
        raise ValidationError("Location requires lat and lon")
    accuracy = data.get("accuracy")
    if accuracy is not None:
        accuracy = _coordinate(accuracy, "Accuracy", float("inf"), ValidationError)
    return validate_point(GeoPoint(lat=data["lat"], lon=data["lon"], accuracy=accuracy))


def geofence_from_mapping(data: Optional[Mapping[str, Any]]) -> Geofence:
    if not data:
        raise InvalidGeofenceError("Geofence is required")
    missing = [k for k in ("lat", "lon", "radius") if k not in data]
    if missing:
        raise InvalidGeofenceError(f"Geofence is missing: {', '.join(missing)}")
    return validate_geofence(Geofence(lat=data["lat"], lon=data["lon"], radius=data["radius"]))
