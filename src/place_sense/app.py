"""FastAPI application for PlaceSense."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from place_sense import __version__
from place_sense.clients.places import PlacesClient, PlacesClientError
from place_sense.config import settings
from place_sense.db import get_session, init_db
from place_sense.resolution.composition import MarkerCompositionPipeline, UserContext
from place_sense.resolution.marker_type import ViewFilters
from place_sense.schemas import (
    ComposeRequest,
    MarkerOut,
    SuggestionOut,
    ValidatePlaceRequest,
    ValidatePlaceResponse,
)
from place_sense.services.location_store import AwardRestaurantNotFoundError, LocationStore
from place_sense.services.place_suggestion import PlaceSuggestionService
from place_sense.services.snapshot_cache import SnapshotCache

snapshot_cache = SnapshotCache(default_ttl_seconds=settings.cache_ttl_locations_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler."""
    await init_db()
    yield


app = FastAPI(
    title="PlaceSense",
    description="Location identity resolution and marker composition",
    version=__version__,
    lifespan=lifespan,
)


def get_cache() -> SnapshotCache:
    return snapshot_cache


async def get_places_client() -> AsyncIterator[PlacesClient]:
    async with PlacesClient() as client:
        yield client


def get_store(
    session: Annotated[AsyncSession, Depends(get_session)],
    cache: Annotated[SnapshotCache, Depends(get_cache)],
) -> LocationStore:
    return LocationStore(session, cache)


def get_suggestion_service(
    store: Annotated[LocationStore, Depends(get_store)],
    places: Annotated[PlacesClient, Depends(get_places_client)],
) -> PlaceSuggestionService:
    return PlaceSuggestionService(store, places)


@app.exception_handler(AwardRestaurantNotFoundError)
async def award_not_found_handler(
    request: Request, exc: AwardRestaurantNotFoundError
) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PlacesClientError)
async def places_error_handler(request: Request, exc: PlacesClientError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok", "version": __version__}


@app.post("/markers/compose")
async def compose_markers(body: ComposeRequest) -> list[MarkerOut]:
    """Compose markers from snapshots supplied in the request. No database access."""
    markers = MarkerCompositionPipeline().compose(
        body.lv_records,
        body.award_records,
        body.want_to_go_records,
        body.user_context(),
        body.filters.to_filters(),
        search_results=body.search_results,
    )
    return [MarkerOut.from_descriptor(m) for m in markers]


@app.get("/markers")
async def list_markers(
    store: Annotated[LocationStore, Depends(get_store)],
    user_id: str | None = None,
    lv_markers: bool = True,
    award_markers: bool = True,
) -> list[MarkerOut]:
    """Compose markers from the stored snapshots. Signed in iff ``user_id`` is given."""
    lv_records = await store.list_locations()
    award_records = await store.list_award_restaurants()

    if user_id is not None:
        want_to_go = await store.list_want_to_go(user_id)
        user = UserContext.of(
            is_authenticated=True,
            favorite_ids=await store.favorite_ids(user_id),
            want_to_go_ids=await store.want_to_go_ids(user_id),
        )
    else:
        want_to_go, user = (), UserContext()

    markers = MarkerCompositionPipeline().compose(
        lv_records,
        award_records,
        want_to_go,
        user,
        ViewFilters(lv_markers=lv_markers, award_markers=award_markers),
    )
    return [MarkerOut.from_descriptor(m) for m in markers]


@app.get("/awards/{award_id}/suggest-place")
async def suggest_place(
    award_id: int,
    service: Annotated[PlaceSuggestionService, Depends(get_suggestion_service)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> SuggestionOut:
    """Suggest a cross-reference id; may link speculatively at high confidence."""
    result = await service.suggest_place(award_id)
    if result.auto_applied:
        await session.commit()
    return SuggestionOut.from_result(result)


@app.post("/awards/{award_id}/validate-place")
async def validate_place(
    award_id: int,
    body: ValidatePlaceRequest,
    service: Annotated[PlaceSuggestionService, Depends(get_suggestion_service)],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ValidatePlaceResponse:
    """Record a human decision about a suggested place."""
    try:
        result = await service.validate_place(
            award_id, body.place_id, body.status, user_id=body.user_id
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    await session.commit()
    return ValidatePlaceResponse(auto_updated=result.auto_updated, unlinked=result.unlinked)
