from typing import Annotated
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from xtream_service import __version__
from xtream_service.exceptions import NoActiveSessionError, XtreamError
from xtream_service.models import CatalogItem, CategoryKind, Channel, MediaKind, Movie
from xtream_service.schemas import (
    CatalogItemsResponse,
    CatalogResponse,
    CategoryResponse,
    ChannelResponse,
    LoginRequest,
    MovieResponse,
    PlaybackURLResponse,
    SeriesResponse,
    SessionResponse,
    VODInfoResponse,
)
from xtream_service.services import SessionSnapshot, XtreamSession, get_session


logger = logging.getLogger(__name__)

main_router = APIRouter()

SessionDep = Annotated[XtreamSession, Depends(get_session)]


def _session_response(snapshot: SessionSnapshot) -> SessionResponse:
    catalog = snapshot.catalog
    return SessionResponse(
        state=snapshot.state.value,
        authenticated=snapshot.authenticated,
        authenticating=snapshot.authenticating,
        auth_error=snapshot.auth_error,
        loading_data=snapshot.loading_data,
        data_error=snapshot.data_error,
        epg_url=snapshot.epg_url,
        username=snapshot.username,
        base_url=snapshot.base_url,
        channels_count=len(catalog.channels),
        movies_count=len(catalog.movies),
        series_count=len(catalog.series),
        categories_count=len(catalog.categories),
    )


def _item_response(item: CatalogItem) -> ChannelResponse | MovieResponse | SeriesResponse:
    if isinstance(item, Channel):
        return ChannelResponse.model_validate(item)
    if isinstance(item, Movie):
        return MovieResponse.model_validate(item)
    return SeriesResponse.model_validate(item)


@main_router.get("/")
async def root() -> dict:
    """Root endpoint with service information"""
    return {
        "service": "Xtream Session Service",
        "version": __version__,
        "endpoints": {
            "session": "/session - Current session state",
            "login": "/session/login - Authenticate and load the catalog (POST)",
            "refresh": "/session/refresh - Reload the catalog (POST)",
            "logout": "/session/logout - Clear the session (POST)",
            "catalog": "/catalog - Current catalog",
            "episodes": "/series/{series_id}/episodes - Episodes of one series",
            "movie_info": "/movies/{vod_id}/info - Details of one movie",
            "playback": "/playback-url - Direct stream URL",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check(session: SessionDep) -> dict:
    """Health check endpoint"""
    return {
        "status": "ok",
        "session_state": session.state.value,
    }


@main_router.get("/session", response_model=SessionResponse)
async def get_session_state(session: SessionDep) -> SessionResponse:
    return _session_response(session.snapshot)


@main_router.post("/session/login", response_model=SessionResponse)
async def login(request: LoginRequest, session: SessionDep) -> SessionResponse:
    """
    Authenticate against the panel and load the catalog

    Login failures are reported in auth_error, not as an HTTP error.
    """
    logger.info("Login requested via API")
    await session.login(request.base_url, request.username, request.password)
    return _session_response(session.snapshot)


@main_router.post("/session/refresh", response_model=SessionResponse)
async def refresh(session: SessionDep) -> SessionResponse:
    logger.info("Catalog refresh requested via API")
    await session.refresh()
    return _session_response(session.snapshot)


@main_router.post("/session/logout", response_model=SessionResponse)
async def logout(session: SessionDep) -> SessionResponse:
    await session.logout()
    return _session_response(session.snapshot)


@main_router.get("/catalog", response_model=CatalogResponse)
async def get_catalog(session: SessionDep) -> CatalogResponse:
    return CatalogResponse.model_validate(session.catalog)


@main_router.get("/catalog/categories", response_model=list[CategoryResponse])
async def get_categories(
    session: SessionDep,
    kind: Annotated[CategoryKind | None, Query(description="live, vod or series")] = None,
) -> list[CategoryResponse]:
    catalog = session.catalog
    categories = catalog.categories_for(kind) if kind else catalog.categories
    return [CategoryResponse.model_validate(category) for category in categories]


@main_router.get("/catalog/items", response_model=CatalogItemsResponse)
async def get_catalog_items(
    session: SessionDep,
    kind: Annotated[CategoryKind, Query(description="live, vod or series")],
    category_id: Annotated[str | None, Query(description="Only items of this category")] = None,
    q: Annotated[str | None, Query(description="Case-insensitive name search")] = None,
) -> CatalogItemsResponse:
    """
    List catalog items of one kind

    Without category_id all items are returned, including those whose
    category the panel did not list. q keeps only items whose name
    contains it.
    """
    items = session.catalog.search(kind, q or "", category_id)
    return CatalogItemsResponse(
        kind=kind,
        category_id=category_id,
        query=q,
        items=[_item_response(item) for item in items],
    )


@main_router.get("/series/{series_id}/episodes", response_model=SeriesResponse)
async def get_series_episodes(series_id: str, session: SessionDep) -> SeriesResponse:
    """Fetch one series with its episodes from the panel"""
    try:
        series = await session.fetch_series_episodes(series_id)
    except NoActiveSessionError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except XtreamError as exc:
        logger.error("Episode fetch for series %s failed: %s", series_id, exc)
        raise HTTPException(status_code=502, detail=str(exc))
    return SeriesResponse.model_validate(series)


@main_router.get("/movies/{vod_id}/info", response_model=VODInfoResponse)
async def get_movie_info(vod_id: str, session: SessionDep) -> VODInfoResponse:
    """Fetch panel details for one movie"""
    try:
        details = await session.fetch_vod_info(vod_id)
    except NoActiveSessionError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except XtreamError as exc:
        logger.error("VOD info fetch for %s failed: %s", vod_id, exc)
        raise HTTPException(status_code=502, detail=str(exc))
    return VODInfoResponse(vod_id=vod_id, **details)


@main_router.get("/playback-url", response_model=PlaybackURLResponse)
async def get_playback_url(
    session: SessionDep,
    kind: Annotated[MediaKind, Query(description="live, movie or series")],
    stream_id: Annotated[str, Query(min_length=1)],
    ext: Annotated[str | None, Query(description="File extension; kind default when omitted")] = None,
) -> PlaybackURLResponse:
    try:
        url = session.build_url(kind, stream_id, ext)
    except NoActiveSessionError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return PlaybackURLResponse(kind=kind, stream_id=stream_id, url=url)
