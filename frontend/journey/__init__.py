"""Flask application factory for the transit directions service."""
import logging
import os
from http import HTTPStatus
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask, jsonify

from .maps_client import PLACES_URL, REQUEST_TIMEOUT, ROUTES_URL

load_dotenv(override=True)


def _get_env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    if value is None:
        return default
    return value.strip()


def _get_env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


def _get_env_flag(name: str) -> bool:
    return _get_env(name, "false").lower() in {"1", "true", "yes"}


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config["SECRET_KEY"] = _get_env("SECRET_KEY", "dev-secret")
    app.config["FLASK_ENV"] = _get_env("FLASK_ENV", "development")
    app.config["GOOGLE_MAPS_KEY"] = _get_env("GOOGLE_MAPS_KEY", "")
    app.config["GOOGLE_ROUTES_API_KEY"] = _get_env("GOOGLE_ROUTES_API_KEY") or app.config["GOOGLE_MAPS_KEY"]
    app.config["GOOGLE_ROUTES_API_URL"] = _get_env("GOOGLE_ROUTES_API_URL") or ROUTES_URL
    app.config["PLACES_API"] = _get_env("PLACES_API") or PLACES_URL
    app.config["DIRECTIONS_LANGUAGE"] = _get_env("DIRECTIONS_LANGUAGE", "en") or "en"
    app.config["REQUEST_TIMEOUT"] = _get_env_float("REQUEST_TIMEOUT", REQUEST_TIMEOUT)
    app.config["DIRECTIONS_STUB"] = _get_env_flag("DIRECTIONS_STUB")
    app.config["PLACES_STUB"] = _get_env_flag("PLACES_STUB")
    app.config["LOG_LEVEL"] = _get_env("LOG_LEVEL", "INFO").upper()
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from .routes import api_bp  # pylint: disable=import-outside-toplevel

    app.register_blueprint(api_bp, url_prefix="/api")

    @app.errorhandler(HTTPStatus.METHOD_NOT_ALLOWED)
    def method_not_allowed(_exc):
        return jsonify({"error": "Method not allowed"}), HTTPStatus.METHOD_NOT_ALLOWED

    return app
