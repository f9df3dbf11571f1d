from datetime import datetime, timezone

import pytest

from journey import create_app


@pytest.fixture
def now():
    return datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "GOOGLE_ROUTES_API_KEY": "test-key",
            "GOOGLE_MAPS_KEY": "test-key",
            "GOOGLE_ROUTES_API_URL": "https://routes.example.test/directions/v2:computeRoutes",
            "PLACES_API": "https://places.example.test/textsearch/json",
            "DIRECTIONS_LANGUAGE": "en",
            "DIRECTIONS_STUB": False,
            "PLACES_STUB": False,
        }
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()
