"""Geographic location model."""

from __future__ import annotations

import math

from pydantic import BaseModel, ConfigDict, Field

from sharealyzer._constants import EARTH_RADIUS_KM


def great_circle_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in kilometers between two coordinates."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class GeoLocation(BaseModel):
    """Latitude and longitude in signed degrees."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    def distance_km(self, other: GeoLocation) -> float:
        return great_circle_km(self.latitude, self.longitude, other.latitude, other.longitude)
