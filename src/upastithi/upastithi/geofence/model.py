from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GeoPoint:
    """A reported coordinate in decimal degrees."""

    lat: float
    lon: float
    accuracy: Optional[float] = None

    def to_dict(self) -> dict:
        out = {"lat": self.lat, "lon": self.lon}
        if self.accuracy is not None:
            out["accuracy"] = self.accuracy
        return out


@dataclass(frozen=True)
class Geofence:
    """Circular region: centre + radius in meters."""

    lat: float
    lon: float
    radius: float

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lon)

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lon": self.lon, "radius": self.radius}
