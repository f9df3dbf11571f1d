"""Data models for directions queries and place lookup results."""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, root_validator, validator


class Coordinate(BaseModel):
    """A WGS84 point given as finite latitude/longitude degrees."""

    latitude: float
    longitude: float

    class Config:
        frozen = True

    @validator("latitude", "longitude")
    def validate_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("coordinate components must be finite numbers")
        return value

    def to_lat_lng(self) -> Dict[str, float]:
        """Return the ``latLng`` shape used by the Routes API."""
        return {"latitude": self.latitude, "longitude": self.longitude}

    def to_query_param(self) -> str:
        return f"{self.latitude},{self.longitude}"


class RouteQuery(BaseModel):
    """Origin, destination and departure time of one directions request."""

    start: Coordinate
    end: Coordinate
    depart_at: datetime

    class Config:
        frozen = True

    @validator("depart_at")
    def validate_depart_at(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class LatLng(BaseModel):
    lat: float
    lng: float


class Geometry(BaseModel):
    location: LatLng


class LocationResult(BaseModel):
    """One place-search candidate, reduced to what the destination picker shows."""

    formatted_address: Optional[str] = None
    geometry: Geometry
    name: Optional[str] = None

    @root_validator(pre=True)
    def validate_label(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        if not values:
            raise ValueError("location result cannot be empty")
        if not values.get("name") and not values.get("formatted_address"):
            raise ValueError("location result must include a name or formatted_address")
        return values
