"""Normalization of raw transit directions into the stable route model.

Upstream directions payloads vary in field names, units and nesting. The
helpers here turn one decoded response into ``{"routes": [...], "language": ...}``
where every route option carries ``route_arrival_time``, ``duration_seconds``,
``price`` and ``legs`` no matter which optional fields the provider sent.

Normalized legs, steps and route options are built by copying the raw mapping
and overriding the normalized keys, so provider fields this module does not
know about are passed through untouched. The output schema is therefore open
beyond the keys listed above.

Nothing in this module performs I/O or reads the clock: callers pass ``now``.
"""
from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import Coordinate, RouteQuery

PRICE_NOT_AVAILABLE = "N/A"
DEFAULT_LEG_MODE = "TRANSIT"
DEFAULT_STEP_MODE = "WALKING"

_LEADING_INT = re.compile(r"^[+-]?\d+")
_FRACTION = re.compile(r"\.(\d+)")


class InvalidLocationFormat(ValueError):
    """Raised when a ``lat,lng`` string cannot be parsed into two finite numbers."""


def parse_location(location: str) -> Coordinate:
    parts = location.split(",") if isinstance(location, str) else []
    if len(parts) != 2:
        raise _invalid_location(location)
    try:
        latitude, longitude = (float(part) for part in parts)
    except ValueError as exc:
        raise _invalid_location(location) from exc
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise _invalid_location(location)
    return Coordinate(latitude=latitude, longitude=longitude)


def build_route_query(start_location: str, end_location: str, depart_at: datetime) -> RouteQuery:
    """Validate both endpoints and bundle them with the departure time."""
    return RouteQuery(
        start=parse_location(start_location),
        end=parse_location(end_location),
        depart_at=depart_at,
    )


def parse_duration(value: Any) -> int:
    """Return whole seconds from ``3600``, ``"3600s"`` or ``"3600"``; 0 when unusable."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        try:
            return int(value)
        except (ValueError, OverflowError):
            return 0
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("s"):
            text = text[:-1]
        match = _LEADING_INT.match(text.strip())
        if match:
            return int(match.group(0))
    return 0


def resolve_arrival_time(route: Mapping[str, Any], now: datetime) -> str:
    """Pick the arrival timestamp for one route option.

    The last leg is the only one that reliably reports arrival, so it wins:
    its ``arrivalTime`` verbatim, else its ``departureTime`` plus its own
    duration. Without either, the route duration is added to ``now``.
    """
    legs = route.get("legs")
    if isinstance(legs, list) and legs:
        last_leg = _as_mapping(legs[-1])
        arrival = last_leg.get("arrivalTime")
        if arrival and isinstance(arrival, str):
            return arrival
        departure = _parse_timestamp(last_leg.get("departureTime"))
        if departure is not None:
            arrival_at = _shift(departure, parse_duration(last_leg.get("duration")))
            if arrival_at is not None:
                return _format_timestamp(arrival_at)

    now = _as_utc(now)
    return _format_timestamp(_shift(now, parse_duration(route.get("duration"))) or now)


def transform_leg(leg: Mapping[str, Any]) -> Dict[str, Any]:
    normalized = dict(_as_mapping(leg))
    normalized["travel_mode"] = _resolve_travel_mode(normalized, DEFAULT_LEG_MODE)
    steps = normalized.get("steps")
    if isinstance(steps, list):
        normalized["steps"] = [transform_step(step) for step in steps]
    return normalized


def transform_step(step: Mapping[str, Any]) -> Dict[str, Any]:
    # transitDetails and the rest of the step stay as the provider sent them.
    normalized = dict(_as_mapping(step))
    normalized["travel_mode"] = _resolve_travel_mode(normalized, DEFAULT_STEP_MODE)
    return normalized


def extract_price(route: Mapping[str, Any]) -> Dict[str, Any]:
    """Locate the transit fare and attach a display string as ``formatted``."""
    fare = _find_fare(route)
    if fare is None:
        return {"formatted": PRICE_NOT_AVAILABLE}

    price = dict(fare)
    price["formatted"] = _format_fare(fare)
    return price


def assemble_route(raw: Mapping[str, Any], now: datetime) -> Dict[str, Any]:
    raw = _as_mapping(raw)
    option = dict(raw)

    option["duration_seconds"] = max(0, parse_duration(raw.get("duration")))
    option["route_arrival_time"] = resolve_arrival_time(raw, now)

    legs = raw.get("legs")
    option["legs"] = [transform_leg(leg) for leg in legs] if isinstance(legs, list) else []

    option["price"] = extract_price(raw)
    return option


def assemble_response(raw_routes: Optional[Iterable[Mapping[str, Any]]], language: str, now: datetime) -> Dict[str, Any]:
    """Normalize every route alternative; no routes is an empty result, not an error."""
    routes: List[Dict[str, Any]] = []
    if raw_routes is not None:
        routes = [assemble_route(raw, now) for raw in raw_routes]
    return {"routes": routes, "language": language}


def _resolve_travel_mode(item: Mapping[str, Any], default: str) -> str:
    return item.get("travelMode") or item.get("travel_mode") or default


def _find_fare(route: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    for container_key in ("travelAdvisory", "localizedValues"):
        container = route.get(container_key)
        if not isinstance(container, dict):
            continue
        fare = container.get("transitFare")
        if isinstance(fare, dict):
            return fare
    return None


def _format_fare(fare: Mapping[str, Any]) -> str:
    text = fare.get("text")
    if text:
        return text

    value = fare.get("value")
    if value is None:
        value = _money_amount(fare)
    if value is None:
        return PRICE_NOT_AVAILABLE

    currency = fare.get("currencyCode") or ""
    return f"{currency} {_format_amount(value)}".strip()


def _money_amount(fare: Mapping[str, Any]) -> Optional[Decimal]:
    # google.type.Money: units as a string, nanos as billionths.
    if fare.get("units") is None and fare.get("nanos") is None:
        return None
    try:
        units = Decimal(str(fare.get("units") or 0))
        nanos = Decimal(str(fare.get("nanos") or 0))
    except InvalidOperation:
        return None
    return units + nanos / Decimal(10**9)


def _format_amount(value: Any) -> str:
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "Zz":
        text = text[:-1] + "+00:00"
    # fromisoformat before 3.11 only takes 3 or 6 fractional digits.
    text = _FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return _as_utc(parsed)


def _shift(moment: datetime, seconds: int) -> Optional[datetime]:
    try:
        return moment + timedelta(seconds=seconds)
    except OverflowError:
        return None


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _format_timestamp(moment: datetime) -> str:
    return _as_utc(moment).isoformat().replace("+00:00", "Z")


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _invalid_location(location: Any) -> InvalidLocationFormat:
    return InvalidLocationFormat(f"Invalid location format: {location!r}. Expected 'lat,lng'")
