import pytest
import requests

from journey import maps_client
from journey.directions import InvalidLocationFormat, build_route_query
from journey.maps_client import (
    MissingApiKey,
    UpstreamUnavailable,
    build_routes_payload,
    compute_routes,
    find_route,
    search_places,
)


class FakeResponse:
    def __init__(self, payload=None, status_code=200, reason="OK"):
        self._payload = payload
        self.status_code = status_code
        self.reason = reason
        self.text = str(payload)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


@pytest.fixture
def query(now):
    return build_route_query("40.7128,-74.0060", "40.7580,-73.9855", now)


@pytest.fixture
def captured_post(monkeypatch):
    calls = []

    def install(response):
        def fake_post(url, **kwargs):
            calls.append({"url": url, **kwargs})
            if isinstance(response, Exception):
                raise response
            return response

        monkeypatch.setattr(maps_client.requests, "post", fake_post)
        return calls

    return install


@pytest.fixture
def captured_get(monkeypatch):
    calls = []

    def install(response):
        def fake_get(url, **kwargs):
            calls.append({"url": url, **kwargs})
            if isinstance(response, Exception):
                raise response
            return response

        monkeypatch.setattr(maps_client.requests, "get", fake_get)
        return calls

    return install


def test_build_routes_payload(query):
    payload = build_routes_payload(query, "de")
    assert payload["origin"]["location"]["latLng"] == {"latitude": 40.7128, "longitude": -74.006}
    assert payload["destination"]["location"]["latLng"] == {"latitude": 40.758, "longitude": -73.9855}
    assert payload["travelMode"] == "TRANSIT"
    assert payload["departureTime"] == "2024-01-01T10:00:00Z"
    assert payload["computeAlternativeRoutes"] is True
    assert payload["languageCode"] == "de"


def test_compute_routes_posts_with_key_and_field_mask(query, captured_post):
    calls = captured_post(FakeResponse({"routes": []}))

    data = compute_routes(query, api_key="test-key", url="https://routes.test/compute", timeout=3)

    assert data == {"routes": []}
    assert len(calls) == 1
    call = calls[0]
    assert call["url"] == "https://routes.test/compute"
    assert call["headers"]["X-Goog-Api-Key"] == "test-key"
    assert "routes.legs" in call["headers"]["X-Goog-FieldMask"]
    assert call["json"]["origin"]["location"]["latLng"]["latitude"] == 40.7128
    assert call["timeout"] == 3


def test_compute_routes_requires_api_key(query, captured_post):
    calls = captured_post(FakeResponse({"routes": []}))
    with pytest.raises(MissingApiKey, match="Google Routes API key is required"):
        compute_routes(query, api_key="")
    assert calls == []


def test_compute_routes_non_success_status(query, captured_post):
    captured_post(FakeResponse({"error": {"message": "bad"}}, status_code=400, reason="Bad Request"))
    with pytest.raises(UpstreamUnavailable, match="Google Routes API error: Bad Request"):
        compute_routes(query, api_key="test-key")


def test_compute_routes_network_error(query, captured_post):
    captured_post(requests.ConnectionError("Network error"))
    with pytest.raises(UpstreamUnavailable, match="Network error"):
        compute_routes(query, api_key="test-key")


def test_compute_routes_invalid_json(query, captured_post):
    captured_post(FakeResponse(ValueError("no json")))
    with pytest.raises(UpstreamUnavailable):
        compute_routes(query, api_key="test-key")


def test_compute_routes_stub_skips_network(query, captured_post):
    calls = captured_post(FakeResponse({"routes": []}))
    data = compute_routes(query, api_key="", stub=True)
    assert calls == []
    assert len(data["routes"]) == 1
    assert data["routes"][0]["legs"][0]["startLocation"]["latLng"] == {"latitude": 40.7128, "longitude": -74.006}


def test_find_route_normalizes_response(now, captured_post):
    captured_post(FakeResponse({"routes": [{"duration": 3600, "legs": []}]}))

    result = find_route("40.7128,-74.0060", "40.7580,-73.9855", api_key="test-key", now=now)

    assert result["language"] == "en"
    assert len(result["routes"]) == 1
    option = result["routes"][0]
    assert option["duration_seconds"] == 3600
    assert option["route_arrival_time"] == "2024-01-01T11:00:00Z"
    assert option["price"] == {"formatted": "N/A"}


@pytest.mark.parametrize("body", [{}, {"routes": None}])
def test_find_route_without_routes(now, captured_post, body):
    captured_post(FakeResponse(body))
    result = find_route("40.7128,-74.0060", "40.7580,-73.9855", api_key="test-key", now=now)
    assert result == {"routes": [], "language": "en"}


def test_find_route_rejects_bad_location_before_calling(now, captured_post):
    calls = captured_post(FakeResponse({"routes": []}))
    with pytest.raises(InvalidLocationFormat):
        find_route("abc,def", "40.7580,-73.9855", api_key="test-key", now=now)
    assert calls == []


def test_find_route_with_stub(now):
    result = find_route("40.7128,-74.0060", "40.7580,-73.9855", api_key="", now=now, stub=True)
    option = result["routes"][0]
    assert option["duration_seconds"] == 1500
    assert option["route_arrival_time"] == "2024-01-01T10:25:00Z"
    assert option["price"]["formatted"] == "USD 2.75"
    assert option["legs"][0]["travel_mode"] == "TRANSIT"
    assert [step["travel_mode"] for step in option["legs"][0]["steps"]] == ["WALK", "TRANSIT"]


PLACES_BODY = {
    "status": "OK",
    "results": [
        {
            "formatted_address": "Euston Rd, London NW1 2RT, UK",
            "geometry": {"location": {"lat": 51.5282, "lng": -0.1337}, "viewport": {}},
            "name": "London Euston",
            "place_id": "abc",
            "rating": 3.9,
        },
        {"name": "No geometry"},
    ],
}


def test_search_places_reduces_results(captured_get):
    calls = captured_get(FakeResponse(PLACES_BODY))

    results = search_places("Euston", api_key="maps-key", url="https://places.test/search")

    assert results == [
        {
            "formatted_address": "Euston Rd, London NW1 2RT, UK",
            "geometry": {"location": {"lat": 51.5282, "lng": -0.1337}},
            "name": "London Euston",
        }
    ]
    params = calls[0]["params"]
    assert params["query"] == "Euston"
    assert params["key"] == "maps-key"
    assert params["fields"] == "formatted_address,name,geometry"
    assert "location" not in params


def test_search_places_passes_location_bias(captured_get):
    calls = captured_get(FakeResponse({"status": "OK", "results": []}))
    search_places("Euston", api_key="maps-key", current_location="51.87,-0.60")
    assert calls[0]["params"]["location"] == "51.87,-0.60"


def test_search_places_zero_results(captured_get):
    captured_get(FakeResponse({"status": "ZERO_RESULTS", "results": []}))
    assert search_places("Nowhere", api_key="maps-key") == []


def test_search_places_error_status(captured_get):
    captured_get(FakeResponse({"status": "REQUEST_DENIED", "error_message": "API key invalid"}))
    with pytest.raises(UpstreamUnavailable, match="API key invalid"):
        search_places("Euston", api_key="bad")


def test_search_places_error_status_without_message(captured_get):
    captured_get(FakeResponse({"status": "OVER_QUERY_LIMIT"}))
    with pytest.raises(UpstreamUnavailable, match="API returned status: OVER_QUERY_LIMIT"):
        search_places("Euston", api_key="maps-key")


def test_search_places_http_error(captured_get):
    captured_get(FakeResponse({}, status_code=400, reason="Bad Request"))
    with pytest.raises(UpstreamUnavailable, match="Google Places API error: Bad Request"):
        search_places("Euston", api_key="maps-key")
