"""
Catalog Aggregation Service

Runs the six catalog sub-fetches concurrently against one wire client and
normalizes the wire records into a single immutable Catalog. The fetch is
all-or-nothing: any failed sub-fetch fails the whole aggregate and no
partial catalog is produced.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from xtream_service.config import settings
from xtream_service.exceptions import AggregateFetchError
from xtream_service.models import (
    Catalog,
    Category,
    CategoryKind,
    Channel,
    Episode,
    MediaKind,
    Movie,
    Series,
)
from xtream_service.schemas import (
    XtreamCategoryWire,
    XtreamEpisodeWire,
    XtreamSeriesInfoWire,
    XtreamSeriesWire,
    XtreamStreamWire,
)
from xtream_service.services.xtream_api_service import XtreamClient
from xtream_service.utils.identifiers import IdStrategy, derive_record_id
from xtream_service.utils.logging_helpers import (
    log_catalog_fetch_end,
    log_catalog_fetch_start,
    log_catalog_summary,
)


logger = logging.getLogger(__name__)


# Normalization

def map_categories(wire: Sequence[XtreamCategoryWire], kind: CategoryKind) -> list[Category]:
    return [Category(id=item.category_id, name=item.category_name, kind=kind) for item in wire]


def map_channels(wire: Sequence[XtreamStreamWire], strategy: IdStrategy = "random") -> list[Channel]:
    channels = []
    for stream in wire:
        record_id = derive_record_id(
            stream.stream_id, MediaKind.LIVE.value, stream.name, stream.category_id, strategy
        )
        channels.append(
            Channel(
                id=record_id,
                name=stream.name,
                logo_url=stream.stream_icon or None,
                category_id=stream.category_id,
                stream_id=record_id,
            )
        )
    return channels


def map_movies(wire: Sequence[XtreamStreamWire], strategy: IdStrategy = "random") -> list[Movie]:
    movies = []
    for stream in wire:
        record_id = derive_record_id(
            stream.stream_id, MediaKind.MOVIE.value, stream.name, stream.category_id, strategy
        )
        movies.append(
            Movie(
                id=record_id,
                title=stream.name,
                cover_url=stream.stream_icon or None,
                category_id=stream.category_id,
                stream_id=record_id,
                container_extension=stream.container_extension or None,
            )
        )
    return movies


def map_series(wire: Sequence[XtreamSeriesWire], strategy: IdStrategy = "random") -> list[Series]:
    """Map series summaries; episodes stay empty until a series-detail fetch."""
    return [
        Series(
            id=derive_record_id(
                item.series_id, MediaKind.SERIES.value, item.name, item.category_id, strategy
            ),
            name=item.name,
            cover_url=item.cover or None,
            category_id=item.category_id,
            episodes=(),
        )
        for item in wire
    ]


def map_episodes(wire: Sequence[XtreamEpisodeWire]) -> list[Episode]:
    """
    Map wire episodes, ordered by season then episode number

    Missing seasons default to 1; missing episode numbers fall back to the
    episode's 1-based position within its season.
    """
    positions: dict[int, int] = {}
    episodes = []
    for item in wire:
        season = item.season if item.season is not None else 1
        positions[season] = positions.get(season, 0) + 1
        number = item.episode_num if item.episode_num is not None else positions[season]
        episodes.append(
            Episode(
                id=item.id,
                title=item.title or f"Episode {number}",
                season_number=season,
                episode_number=number,
                stream_id=item.id,
                container_extension=item.container_extension or None,
            )
        )
    episodes.sort(key=lambda episode: (episode.season_number, episode.episode_number))
    return episodes


def map_series_info(
    wire: XtreamSeriesInfoWire,
    series_id: str,
    summary: Series | None = None,
) -> Series:
    """Build a Series with its episodes from a series-detail response."""
    info = wire.info
    return Series(
        id=series_id,
        name=info.name or (summary.name if summary else ""),
        cover_url=info.cover or (summary.cover_url if summary else None),
        category_id=info.category_id or (summary.category_id if summary else None),
        episodes=tuple(map_episodes(wire.episodes)),
    )


# Aggregation

class CatalogAggregator:
    """Fans out the catalog sub-fetches and joins them into one Catalog."""

    def __init__(self, client: XtreamClient, *, id_strategy: IdStrategy | None = None) -> None:
        self.client = client
        self.id_strategy: IdStrategy = id_strategy or settings.synthetic_id_strategy

    def _sub_fetches(self) -> list[tuple[str, Callable[[], Awaitable[Any]]]]:
        # Declaration order decides which error is reported first
        return [
            ("live categories", self.client.get_live_categories),
            ("vod categories", self.client.get_vod_categories),
            ("series categories", self.client.get_series_categories),
            ("live streams", self.client.get_live_streams),
            ("vod streams", self.client.get_vod_streams),
            ("series", self.client.get_series),
        ]

    async def fetch_catalog(self, epg_url: str | None = None) -> Catalog:
        """
        Fetch and normalize the full catalog

        Args:
            epg_url: EPG URL captured at authentication, carried into the catalog

        Returns:
            New immutable Catalog

        Raises:
            AggregateFetchError: If any sub-fetch failed
        """
        username = self.client.credentials.username
        log_catalog_fetch_start(logger, username)

        results = await self._collect()
        live_cats, vod_cats, series_cats, live, vod, series = results

        categories = (
            map_categories(live_cats, CategoryKind.LIVE)
            + map_categories(vod_cats, CategoryKind.VOD)
            + map_categories(series_cats, CategoryKind.SERIES)
        )
        catalog = Catalog(
            channels=tuple(map_channels(live, self.id_strategy)),
            movies=tuple(map_movies(vod, self.id_strategy)),
            series=tuple(map_series(series, self.id_strategy)),
            categories=tuple(categories),
            epg_url=epg_url,
        )

        log_catalog_summary(
            logger,
            len(catalog.channels),
            len(catalog.movies),
            len(catalog.series),
            len(catalog.categories),
        )
        log_catalog_fetch_end(logger, username)
        return catalog

    async def _collect(self) -> list[Any]:
        sub_fetches = self._sub_fetches()
        tasks = [
            asyncio.create_task(fetch(), name=f"xtream:{label}")
            for label, fetch in sub_fetches
        ]

        # Cancelling this gather cancels every in-flight sub-fetch
        results = await asyncio.gather(*tasks, return_exceptions=True)

        failures: list[tuple[str, BaseException]] = [
            (label, result)
            for (label, _), result in zip(sub_fetches, results)
            if isinstance(result, BaseException)
        ]
        if not failures:
            return results

        for _, error in failures:
            if not isinstance(error, (Exception, asyncio.CancelledError)):
                raise error

        (first_label, first_error), *others = failures
        for label, error in others:
            logger.warning("Catalog sub-fetch '%s' also failed: %s", label, error)
        logger.error(
            "Catalog sub-fetch '%s' failed: %s (%s of %s sub-fetches failed)",
            first_label,
            first_error,
            len(failures),
            len(sub_fetches),
        )
        raise AggregateFetchError(first_error, [error for _, error in failures]) from first_error
