"""Shared fixtures: an in-memory Xtream panel served through httpx.MockTransport."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import pytest

from xtream_service.models import Credentials
from xtream_service.services.xtream_api_service import XtreamClient


BASE_URL = "http://panel.example:8080"

Handler = Callable[[httpx.Request], "httpx.Response | Awaitable[httpx.Response]"]


def default_dataset() -> dict[str, Any]:
    return {
        "get_user_info": {
            "user_info": {"username": "alice", "auth": 1, "status": "Active"},
            "server_info": {"url": "panel.example", "epg_url": "http://panel.example/epg.xml"},
        },
        "get_live_categories": [
            {"category_id": "1", "category_name": "News", "parent_id": 0},
            {"category_id": "2", "category_name": "Sports", "parent_id": 0},
        ],
        "get_vod_categories": [{"category_id": "10", "category_name": "Action"}],
        "get_series_categories": [{"category_id": "20", "category_name": "Drama"}],
        "get_live_streams": [
            {"num": 1, "name": "World News", "stream_id": 101, "stream_icon": "http://img/1.png", "category_id": "1"},
            {"num": 2, "name": "Match TV", "stream_id": 102, "stream_icon": "", "category_id": "2"},
            {"num": 3, "name": "Lost Channel", "stream_id": 103, "category_id": "99"},
        ],
        "get_vod_streams": [
            {"name": "Fast Cars", "stream_id": 201, "stream_icon": "http://img/m.jpg",
             "category_id": "10", "container_extension": "mkv"},
        ],
        "get_series": [
            {"name": "The Show", "series_id": 301, "cover": "http://img/s.jpg", "category_id": "20"},
        ],
        "get_series_info": {
            "info": {"name": "The Show", "cover": "http://img/s.jpg", "category_id": "20"},
            "episodes": {
                "2": [{"id": "5002", "episode_num": 1, "title": "S2E1", "container_extension": "mkv"}],
                "1": [
                    {"id": "5001", "episode_num": 2, "title": "S1E2", "container_extension": "mp4"},
                    {"id": "5000", "episode_num": 1, "title": "Pilot", "container_extension": "mp4"},
                ],
            },
        },
    }


class FakePanel:
    """Serves canned player_api.php answers keyed by action and records requests."""

    def __init__(self, dataset: dict[str, Any] | None = None) -> None:
        self.dataset: dict[str, Any] = default_dataset() if dataset is None else dataset
        self.statuses: dict[str, int] = {}
        self.raw_bodies: dict[str, bytes] = {}
        self.handlers: dict[str, Handler] = {}
        self.requests: list[httpx.Request] = []

    def actions(self) -> list[str | None]:
        return [request.url.params.get("action") for request in self.requests]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        action = request.url.params.get("action", "")

        if action in self.handlers:
            response = self.handlers[action](request)
            if not isinstance(response, httpx.Response):
                response = await response
            return response
        if action in self.statuses:
            return httpx.Response(self.statuses[action], text="error")
        if action in self.raw_bodies:
            return httpx.Response(200, content=self.raw_bodies[action])
        if action in self.dataset:
            return httpx.Response(200, json=self.dataset[action])
        return httpx.Response(404, text="unknown action")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self, credentials: Credentials) -> XtreamClient:
        return XtreamClient(credentials, transport=self.transport())


@pytest.fixture
def panel() -> FakePanel:
    return FakePanel()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(BASE_URL, "alice", "s3cret")


@pytest.fixture
def client(panel, credentials) -> XtreamClient:
    return panel.client(credentials)
