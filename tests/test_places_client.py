"""Tests for the place-search provider client.

Requests go through httpx.MockTransport; nothing touches the network.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable

import httpx
import pytest

from place_sense.clients.places import FIELD_MASK, PlacesClient, PlacesClientError
from place_sense.config import settings
from place_sense.resolution.identity_key import Coordinates

PLACES_RESPONSE = {
    "places": [
        {
            "id": "ChIJ-bernardin",
            "displayName": {"text": "Le Bernardin", "languageCode": "en"},
            "formattedAddress": "155 W 51st St, New York, NY 10019, USA",
            "location": {"latitude": 40.7615, "longitude": -73.9818},
            "rating": 4.7,
            "userRatingCount": 3120,
            "types": ["fine_dining_restaurant", "restaurant", "food"],
        },
        {"displayName": {"text": "Missing id"}},
    ]
}


def client_for(handler: Callable[[httpx.Request], httpx.Response]) -> PlacesClient:
    return PlacesClient(
        api_key="test-key",
        base_url="https://places.test/v1",
        transport=httpx.MockTransport(handler),
    )


class TestSearchText:
    async def test_request_shape(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=PLACES_RESPONSE)

        async with client_for(handler) as places:
            await places.search_text(
                "Le Bernardin, New York",
                near=Coordinates(40.7615, -73.9818),
                radius_m=250,
                max_results=5,
            )

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://places.test/v1/places:searchText"
        assert request.headers["X-Goog-Api-Key"] == "test-key"
        assert request.headers["X-Goog-FieldMask"] == FIELD_MASK
        assert json.loads(request.content) == {
            "textQuery": "Le Bernardin, New York",
            "maxResultCount": 5,
            "locationBias": {
                "circle": {
                    "center": {"latitude": 40.7615, "longitude": -73.9818},
                    "radius": 250,
                }
            },
        }

    async def test_defaults_from_settings(self) -> None:
        bodies: list[dict[str, object]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={})

        async with client_for(handler) as places:
            await places.search_text("Le Bernardin")

        assert bodies == [
            {"textQuery": "Le Bernardin", "maxResultCount": settings.places_max_results}
        ]

    async def test_parses_candidates(self) -> None:
        async with client_for(lambda _: httpx.Response(200, json=PLACES_RESPONSE)) as places:
            candidates = await places.search_text("Le Bernardin")

        assert len(candidates) == 1
        candidate = candidates[0]
        assert candidate.id == "ChIJ-bernardin"
        assert candidate.display_name == "Le Bernardin"
        assert candidate.coordinates == Coordinates(40.7615, -73.9818)
        assert candidate.user_rating_count == 3120
        assert "restaurant" in candidate.types

    async def test_empty_response(self) -> None:
        async with client_for(lambda _: httpx.Response(200, json={})) as places:
            assert await places.search_text("Nothing here") == []

    async def test_logs_when_enabled(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        monkeypatch.setattr(settings, "log_api_calls", True)
        with caplog.at_level(logging.INFO, logger="place_sense.clients.places"):
            async with client_for(lambda _: httpx.Response(200, json=PLACES_RESPONSE)) as places:
                await places.search_text("Le Bernardin")
        assert "[PLACES] searchText" in caplog.text


class TestErrors:
    async def test_http_error_status(self) -> None:
        async with client_for(lambda _: httpx.Response(503, text="unavailable")) as places:
            with pytest.raises(PlacesClientError) as exc_info:
                await places.search_text("Le Bernardin")
        assert exc_info.value.status_code == 503

    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with client_for(handler) as places:
            with pytest.raises(PlacesClientError) as exc_info:
                await places.search_text("Le Bernardin")
        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    async def test_non_json_body(self) -> None:
        async with client_for(lambda _: httpx.Response(200, text="<html>oops</html>")) as places:
            with pytest.raises(PlacesClientError, match="non-JSON"):
                await places.search_text("Le Bernardin")
