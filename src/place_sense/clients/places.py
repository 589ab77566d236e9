"""Async client for the place-search provider (Places API text search)."""

from __future__ import annotations

import logging
import time
from types import TracebackType
from typing import Any

import httpx

from place_sense.config import settings
from place_sense.resolution.identity_key import Coordinates
from place_sense.resolution.records import SearchCandidate, search_candidates_from

logger = logging.getLogger(__name__)

FIELD_MASK = ",".join(
    (
        "places.id",
        "places.displayName",
        "places.formattedAddress",
        "places.location",
        "places.rating",
        "places.userRatingCount",
        "places.types",
        "places.priceLevel",
    )
)


class PlacesClientError(Exception):
    """Provider request failed (transport error, non-2xx or bad payload)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PlacesClient:
    """Text search with a circular location bias.

    Usage:
        async with PlacesClient() as places:
            candidates = await places.search_text(
                "Le Bernardin, New York", near=Coordinates(40.7615, -73.9818)
            )
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.places_api_key
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.places_base_url).rstrip("/"),
            timeout=timeout if timeout is not None else settings.places_timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> PlacesClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def search_text(
        self,
        query: str,
        near: Coordinates | None = None,
        radius_m: float | None = None,
        *,
        max_results: int | None = None,
    ) -> list[SearchCandidate]:
        """Search places by free text.

        Args:
            query: Text query, typically "name, address".
            near: Bias results toward this point.
            radius_m: Bias circle radius (default from config).
            max_results: Upper bound on results (default from config).

        Returns:
            Candidates in provider order. Results without an id are dropped.

        Raises:
            PlacesClientError: On transport failure, non-2xx or non-JSON body.
        """
        body: dict[str, Any] = {
            "textQuery": query,
            "maxResultCount": max_results or settings.places_max_results,
        }
        if near is not None:
            body["locationBias"] = {
                "circle": {
                    "center": {"latitude": near.lat, "longitude": near.lng},
                    "radius": radius_m or settings.places_search_radius_meters,
                }
            }

        headers = {
            "X-Goog-Api-Key": self._api_key,
            "X-Goog-FieldMask": FIELD_MASK,
        }

        start_time = time.time()
        try:
            response = await self._client.post("/places:searchText", json=body, headers=headers)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "Place search failed (%d) for %r", e.response.status_code, query
            )
            raise PlacesClientError(
                f"Place search returned {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Place search transport error for %r: %s", query, e)
            raise PlacesClientError(f"Place search failed: {e}") from e
        except ValueError as e:
            raise PlacesClientError("Place search returned a non-JSON body") from e

        places = payload.get("places", []) if isinstance(payload, dict) else []
        candidates = search_candidates_from(places)

        if settings.log_api_calls:
            elapsed = (time.time() - start_time) * 1000  # ms
            logger.info(
                "[PLACES] searchText %r → %d results (%.0fms)",
                query, len(candidates), elapsed
            )

        return candidates
