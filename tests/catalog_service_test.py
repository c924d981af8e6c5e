"""Tests for services/catalog_service.py - catalog aggregation and normalization."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from xtream_service.exceptions import AggregateFetchError, DecodingError, HTTPStatusError
from xtream_service.models import CategoryKind, Series
from xtream_service.schemas import XtreamEpisodeWire, XtreamSeriesInfoWire, XtreamSeriesWire
from xtream_service.services.catalog_service import (
    CatalogAggregator,
    map_episodes,
    map_series_info,
)


CATALOG_ACTIONS = {
    "get_live_categories",
    "get_vod_categories",
    "get_series_categories",
    "get_live_streams",
    "get_vod_streams",
    "get_series",
}


class TestFetchCatalog:
    def test_builds_full_catalog(self, client, panel):
        catalog = asyncio.run(CatalogAggregator(client).fetch_catalog(epg_url="http://e"))

        assert [c.name for c in catalog.channels] == ["World News", "Match TV", "Lost Channel"]
        assert [c.id for c in catalog.channels] == ["101", "102", "103"]
        assert [m.title for m in catalog.movies] == ["Fast Cars"]
        assert [s.name for s in catalog.series] == ["The Show"]
        assert catalog.epg_url == "http://e"
        assert set(panel.actions()) == CATALOG_ACTIONS
        assert len(panel.requests) == 6

    def test_categories_keep_their_kind(self, client):
        catalog = asyncio.run(CatalogAggregator(client).fetch_catalog())

        assert [(c.id, c.kind) for c in catalog.categories] == [
            ("1", CategoryKind.LIVE),
            ("2", CategoryKind.LIVE),
            ("10", CategoryKind.VOD),
            ("20", CategoryKind.SERIES),
        ]

    def test_record_fields_are_normalized(self, client):
        catalog = asyncio.run(CatalogAggregator(client).fetch_catalog())
        world, match, _ = catalog.channels
        movie = catalog.movies[0]
        series = catalog.series[0]

        assert world.logo_url == "http://img/1.png"
        assert match.logo_url is None
        assert world.stream_id == world.id
        assert movie.container_extension == "mkv"
        assert movie.cover_url == "http://img/m.jpg"
        assert series.id == "301"
        assert series.episodes == ()

    def test_orphan_items_are_uncategorized(self, client):
        catalog = asyncio.run(CatalogAggregator(client).fetch_catalog())

        assert [c.name for c in catalog.uncategorized(CategoryKind.LIVE)] == ["Lost Channel"]
        assert [c.name for c in catalog.items_in_category(CategoryKind.LIVE, "1")] == ["World News"]
        assert catalog.uncategorized(CategoryKind.VOD) == ()

    def test_empty_panel_gives_empty_catalog(self, client, panel):
        for action in CATALOG_ACTIONS:
            panel.dataset[action] = []

        catalog = asyncio.run(CatalogAggregator(client).fetch_catalog())
        assert catalog.is_empty

    def test_single_failure_fails_aggregate(self, client, panel):
        panel.statuses["get_series"] = 500

        with pytest.raises(AggregateFetchError) as excinfo:
            asyncio.run(CatalogAggregator(client).fetch_catalog())

        assert isinstance(excinfo.value.first_cause, HTTPStatusError)
        assert excinfo.value.first_cause.status_code == 500
        assert "Failed to load data" in str(excinfo.value)

    def test_first_error_follows_declaration_order(self, client, panel):
        panel.statuses["get_series"] = 500
        panel.dataset["get_vod_categories"] = "garbage"

        with pytest.raises(AggregateFetchError) as excinfo:
            asyncio.run(CatalogAggregator(client).fetch_catalog())

        assert isinstance(excinfo.value.first_cause, DecodingError)
        assert len(excinfo.value.errors) == 2

    def test_cancellation_cancels_sub_fetches(self, client, panel):
        started = asyncio.Event()
        cancelled = []

        async def hang(request):
            started.set()
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.append(request.url.params["action"])
                raise
            return httpx.Response(200, json=[])

        panel.handlers["get_series"] = hang

        async def run():
            task = asyncio.create_task(CatalogAggregator(client).fetch_catalog())
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())
        assert cancelled == ["get_series"]


class TestSyntheticIds:
    def _panel_without_ids(self, panel):
        panel.dataset["get_live_streams"] = [{"name": "No Id", "category_id": "1"}]
        panel.dataset["get_series"] = [{"name": "No Id Show"}]

    def test_random_ids_differ_between_fetches(self, client, panel):
        self._panel_without_ids(panel)
        aggregator = CatalogAggregator(client, id_strategy="random")

        first = asyncio.run(aggregator.fetch_catalog())
        second = asyncio.run(aggregator.fetch_catalog())

        assert first.channels[0].id != second.channels[0].id
        assert first.channels[0].id == first.channels[0].id.upper()

    def test_stable_ids_repeat_between_fetches(self, client, panel):
        self._panel_without_ids(panel)
        aggregator = CatalogAggregator(client, id_strategy="stable")

        first = asyncio.run(aggregator.fetch_catalog())
        second = asyncio.run(aggregator.fetch_catalog())

        assert first.channels[0].id == second.channels[0].id
        assert first.series[0].id == second.series[0].id
        assert first.channels[0].stream_id == first.channels[0].id


class TestMapEpisodes:
    def test_sorted_by_season_then_number(self):
        wire = [
            XtreamEpisodeWire(id="3", season=2, episode_num=1),
            XtreamEpisodeWire(id="2", season=1, episode_num=2),
            XtreamEpisodeWire(id="1", season=1, episode_num=1),
        ]
        assert [e.id for e in map_episodes(wire)] == ["1", "2", "3"]

    def test_defaults(self):
        wire = [XtreamEpisodeWire(id="a"), XtreamEpisodeWire(id="b", title="Named")]
        first, second = map_episodes(wire)

        assert (first.season_number, first.episode_number, first.title) == (1, 1, "Episode 1")
        assert (second.episode_number, second.title) == (2, "Named")
        assert first.stream_id == "a"

    def test_map_series_info_falls_back_to_summary(self):
        wire = XtreamSeriesInfoWire(
            info=XtreamSeriesWire(name=""),
            episodes=[XtreamEpisodeWire(id="9", season=1, episode_num=1)],
        )
        summary = Series(id="301", name="The Show", cover_url="http://c", category_id="20")

        series = map_series_info(wire, "301", summary)

        assert (series.name, series.cover_url, series.category_id) == ("The Show", "http://c", "20")
        assert [e.id for e in series.episodes] == ["9"]


class TestCatalogSearch:
    @pytest.fixture
    def catalog(self, client):
        return asyncio.run(CatalogAggregator(client).fetch_catalog())

    def test_case_insensitive_name_match(self, catalog):
        assert [c.name for c in catalog.search(CategoryKind.LIVE, "NEWS")] == ["World News"]

    def test_matches_movie_titles(self, catalog):
        assert [m.title for m in catalog.search(CategoryKind.VOD, "cars")] == ["Fast Cars"]

    def test_combines_with_category(self, catalog):
        assert catalog.search(CategoryKind.LIVE, "news", category_id="2") == ()
        assert [c.name for c in catalog.search(CategoryKind.LIVE, "tv", category_id="2")] == ["Match TV"]

    def test_blank_query_matches_everything(self, catalog):
        assert catalog.search(CategoryKind.LIVE, "  ") == catalog.channels
        assert catalog.search(CategoryKind.SERIES, "", category_id="20") == catalog.series

    def test_no_match(self, catalog):
        assert catalog.search(CategoryKind.SERIES, "documentary") == ()
