"""Thin wrapper around the Google Routes and Places HTTP APIs."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from .directions import assemble_response, build_route_query
from .models import LocationResult, RouteQuery

ROUTES_URL = "https://routes.googleapis.com/directions/v2:computeRoutes"
PLACES_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"
PLACES_FIELDS = "formatted_address,name,geometry"
REQUEST_TIMEOUT = 10
ROUTES_FIELD_MASK = ",".join(
    [
        "routes.duration",
        "routes.distanceMeters",
        "routes.legs",
        "routes.travelAdvisory.transitFare",
        "routes.localizedValues",
    ]
)

logger = logging.getLogger(__name__)


class UpstreamUnavailable(RuntimeError):
    """Raised when a provider call fails or answers with a non-success status."""


class MissingApiKey(RuntimeError):
    """Raised when a provider call is attempted without a configured key."""


def build_routes_payload(query: RouteQuery, language: str = "en") -> Dict[str, object]:
    return {
        "origin": {"location": {"latLng": query.start.to_lat_lng()}},
        "destination": {"location": {"latLng": query.end.to_lat_lng()}},
        "travelMode": "TRANSIT",
        "departureTime": _format_rfc3339(query.depart_at),
        "computeAlternativeRoutes": True,
        "languageCode": language,
        "units": "METRIC",
    }


def compute_routes(
    query: RouteQuery,
    *,
    api_key: str,
    url: str = ROUTES_URL,
    language: str = "en",
    timeout: float = REQUEST_TIMEOUT,
    stub: bool = False,
) -> Dict[str, Any]:
    """POST a transit request and return the decoded response body."""
    if stub:
        logger.info("Directions stub enabled, returning canned transit response")
        return _build_stub_routes(query)
    if not api_key:
        raise MissingApiKey("Google Routes API key is required")

    headers = {
        "Content-Type": "application/json",
        "X-Goog-Api-Key": api_key,
        "X-Goog-FieldMask": ROUTES_FIELD_MASK,
    }
    payload = build_routes_payload(query, language)
    logger.debug("Requesting transit routes %s -> %s", query.start.to_query_param(), query.end.to_query_param())
    try:
        response = requests.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Routes request failed: %s", exc)
        raise UpstreamUnavailable(f"Google Routes API error: {exc}") from exc

    if not response.ok:
        logger.warning("Routes request returned %s: %s", response.status_code, response.text)
        raise UpstreamUnavailable(f"Google Routes API error: {response.reason or response.status_code}")
    try:
        data = response.json()
    except ValueError as exc:
        raise UpstreamUnavailable("Google Routes API error: response is not valid JSON") from exc
    if not isinstance(data, dict):
        raise UpstreamUnavailable("Google Routes API error: unexpected response shape")
    return data


def find_route(
    start_location: str,
    end_location: str,
    *,
    api_key: str,
    now: Optional[datetime] = None,
    url: str = ROUTES_URL,
    language: str = "en",
    timeout: float = REQUEST_TIMEOUT,
    stub: bool = False,
) -> Dict[str, Any]:
    """Validate both ``lat,lng`` endpoints, fetch transit directions and normalize them.

    ``now`` is used both as the requested departure time and as the base for
    arrival times the provider did not report.
    """
    moment = now or datetime.now(timezone.utc)
    query = build_route_query(start_location, end_location, moment)
    data = compute_routes(query, api_key=api_key, url=url, language=language, timeout=timeout, stub=stub)
    return assemble_response(data.get("routes"), language, moment)


def search_places(
    query: str,
    *,
    api_key: str,
    current_location: Optional[str] = None,
    url: str = PLACES_URL,
    timeout: float = REQUEST_TIMEOUT,
    stub: bool = False,
) -> List[Dict[str, object]]:
    if stub:
        logger.info("Places stub enabled, returning canned suggestion")
        return [_stub_place(query, current_location)]

    params = {"query": query, "fields": PLACES_FIELDS, "key": api_key}
    # Location bias only when the browser shared a position.
    if current_location:
        params["location"] = current_location
    try:
        response = requests.get(url, params=params, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Place search failed for %s: %s", query, exc)
        raise UpstreamUnavailable(f"Google Places API error: {exc}") from exc

    if not response.ok:
        logger.warning("Place search for %s returned %s", query, response.status_code)
        raise UpstreamUnavailable(f"Google Places API error: {response.reason or response.status_code}")
    try:
        data = response.json() or {}
    except ValueError as exc:
        raise UpstreamUnavailable("Google Places API error: response is not valid JSON") from exc

    status = data.get("status")
    if status not in {"OK", "ZERO_RESULTS"}:
        raise UpstreamUnavailable(data.get("error_message") or f"API returned status: {status}")

    results: List[Dict[str, object]] = []
    for item in data.get("results") or []:
        if not isinstance(item, dict):
            continue
        try:
            result = LocationResult.parse_obj(
                {
                    "formatted_address": item.get("formatted_address"),
                    "geometry": item.get("geometry"),
                    "name": item.get("name"),
                }
            )
        except ValidationError as exc:
            logger.debug("Skipping malformed place result %s: %s", item.get("place_id"), exc)
            continue
        results.append(result.dict())
    return results


def _format_rfc3339(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _stub_place(query: str, current_location: Optional[str]) -> Dict[str, object]:
    lat, lng = 51.5282, -0.1337
    if current_location:
        try:
            lat_text, lng_text = current_location.split(",")
            lat, lng = float(lat_text), float(lng_text)
        except ValueError:
            pass
    return {
        "formatted_address": f"{query} (stub)",
        "geometry": {"location": {"lat": lat, "lng": lng}},
        "name": query,
    }


def _build_stub_routes(query: RouteQuery) -> Dict[str, Any]:
    depart = query.depart_at.astimezone(timezone.utc).replace(microsecond=0)
    board = depart + timedelta(minutes=5)
    arrive = board + timedelta(minutes=20)
    start = query.start.to_lat_lng()
    end = query.end.to_lat_lng()
    return {
        "routes": [
            {
                "duration": "1500s",
                "distanceMeters": 6200,
                "legs": [
                    {
                        "duration": "1500s",
                        "distanceMeters": 6200,
                        "startLocation": {"latLng": start},
                        "endLocation": {"latLng": end},
                        "steps": [
                            {
                                "travelMode": "WALK",
                                "distanceMeters": 350,
                                "staticDuration": "300s",
                                "navigationInstruction": {"instructions": "Walk to Central Station"},
                            },
                            {
                                "travelMode": "TRANSIT",
                                "distanceMeters": 5850,
                                "staticDuration": "1200s",
                                "transitDetails": {
                                    "stopDetails": {
                                        "departureStop": {"name": "Central Station"},
                                        "arrivalStop": {"name": "Harbour Street"},
                                        "departureTime": _format_rfc3339(board),
                                        "arrivalTime": _format_rfc3339(arrive),
                                    },
                                    "headsign": "Harbour",
                                    "stopCount": 7,
                                    "transitLine": {"nameShort": "12", "color": "#1565c0"},
                                },
                            },
                        ],
                    }
                ],
                "travelAdvisory": {"transitFare": {"currencyCode": "USD", "units": "2", "nanos": 750000000}},
                "localizedValues": {"transitFare": {"text": "$2.75"}},
            }
        ]
    }
