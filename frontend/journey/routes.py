"""REST API blueprint exposing destination search and transit directions."""
from __future__ import annotations

from http import HTTPStatus
from typing import List

from flask import Blueprint, current_app, jsonify, request

from .directions import InvalidLocationFormat
from .maps_client import MissingApiKey, UpstreamUnavailable, find_route, search_places

api_bp = Blueprint("api", __name__)


def _missing_parameters(*names: str) -> List[str]:
    return [name for name in names if not (request.args.get(name) or "").strip()]


@api_bp.get("/health")
def health():
    return jsonify({"status": "ok"})


@api_bp.get("/route")
def route():
    missing = _missing_parameters("start_location", "end_location")
    if missing:
        label = "parameter" if len(missing) == 1 else "parameters"
        return jsonify({"error": f"Missing required {label}: {' and '.join(missing)}"}), HTTPStatus.BAD_REQUEST

    start_location = request.args["start_location"].strip()
    end_location = request.args["end_location"].strip()
    config = current_app.config
    try:
        result = find_route(
            start_location,
            end_location,
            api_key=config.get("GOOGLE_ROUTES_API_KEY", ""),
            url=config.get("GOOGLE_ROUTES_API_URL"),
            language=config.get("DIRECTIONS_LANGUAGE", "en"),
            timeout=config.get("REQUEST_TIMEOUT"),
            stub=config.get("DIRECTIONS_STUB", False),
        )
    except InvalidLocationFormat as exc:
        return jsonify({"error": str(exc)}), HTTPStatus.BAD_REQUEST
    except UpstreamUnavailable as exc:
        current_app.logger.warning("Directions provider unavailable: %s", exc)
        return jsonify({"error": str(exc)}), HTTPStatus.BAD_GATEWAY
    except MissingApiKey as exc:
        current_app.logger.error("Directions requested without an API key")
        return jsonify({"error": str(exc)}), HTTPStatus.INTERNAL_SERVER_ERROR
    except Exception:  # pylint: disable=broad-except
        current_app.logger.exception("Failed to fetch route")
        return jsonify({"error": "Failed to fetch route"}), HTTPStatus.INTERNAL_SERVER_ERROR
    return jsonify(result)


@api_bp.get("/locations")
def locations():
    destination = (request.args.get("destination") or "").strip()
    if not destination:
        return jsonify({"error": "Missing required parameter: destination"}), HTTPStatus.BAD_REQUEST
    current_location = (request.args.get("currentLocation") or "").strip() or None

    config = current_app.config
    try:
        results = search_places(
            destination,
            api_key=config.get("GOOGLE_MAPS_KEY", ""),
            current_location=current_location,
            url=config.get("PLACES_API"),
            timeout=config.get("REQUEST_TIMEOUT"),
            stub=config.get("PLACES_STUB", False),
        )
    except UpstreamUnavailable as exc:
        current_app.logger.warning("Places provider unavailable: %s", exc)
        return jsonify({"error": str(exc)}), HTTPStatus.BAD_GATEWAY
    except Exception:  # pylint: disable=broad-except
        current_app.logger.exception("Failed to fetch locations")
        return jsonify({"error": "Failed to fetch locations"}), HTTPStatus.INTERNAL_SERVER_ERROR
    return jsonify(results)
