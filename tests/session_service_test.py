"""Tests for services/session_service.py - session state machine."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from xtream_service.exceptions import NoActiveSessionError
from xtream_service.models import MediaKind
from xtream_service.services.session_service import (
    SessionSnapshot,
    SessionState,
    XtreamSession,
    get_session,
    reset_session,
)


BASE_URL = "http://panel.example:8080"


@pytest.fixture
def session(panel) -> XtreamSession:
    return XtreamSession(client_factory=panel.client)


def _login(session, base_url=BASE_URL, username="alice", password="s3cret"):
    return asyncio.run(session.login(base_url, username, password))


class TestLogin:
    def test_success(self, session):
        assert _login(session) is True

        assert session.state == SessionState.AUTHENTICATED
        assert session.authenticated
        assert session.auth_error is None
        assert session.epg_url == "http://panel.example/epg.xml"
        assert len(session.catalog.channels) == 3
        assert session.snapshot.username == "alice"
        assert session.credentials.base_url == BASE_URL

    def test_invalid_url_makes_no_request(self, session, panel):
        assert _login(session, base_url="not a url") is False

        assert session.state == SessionState.ERROR
        assert session.auth_error.startswith("Invalid URL format")
        assert panel.requests == []

    def test_empty_password_is_error(self, session, panel):
        assert _login(session, password="") is False

        assert session.state == SessionState.ERROR
        assert session.auth_error
        assert panel.requests == []

    def test_aggregate_failure_is_auth_error(self, session, panel):
        panel.statuses["get_vod_streams"] = 502

        assert _login(session) is False

        assert session.state == SessionState.ERROR
        assert "Failed to load data" in session.auth_error
        assert session.catalog.is_empty
        assert session.credentials is None

    def test_rejected_credentials(self, session, panel):
        panel.dataset["get_user_info"] = {"user_info": {"auth": 0}}

        assert _login(session) is False
        assert session.auth_error == "Authentication failed"
        assert panel.actions() == ["get_user_info"]

    def test_login_replaces_previous_session(self, session, panel):
        _login(session)
        panel.dataset["get_live_streams"] = []

        assert _login(session) is True
        assert session.catalog.channels == ()

    def test_superseded_login_is_discarded(self, panel):
        gate = asyncio.Event()

        async def user_info(request):
            username = request.url.params["username"]
            if username == "slow":
                await gate.wait()
            return httpx.Response(200, json={"user_info": {"username": username}})

        panel.handlers["get_user_info"] = user_info
        session = XtreamSession(client_factory=panel.client)

        async def run():
            slow = asyncio.create_task(session.login(BASE_URL, "slow", "pw"))
            await asyncio.sleep(0)
            fast = await session.login(BASE_URL, "fast", "pw")
            gate.set()
            return fast, await slow

        fast, slow = asyncio.run(run())

        assert (fast, slow) == (True, False)
        assert session.snapshot.username == "fast"
        assert session.credentials.username == "fast"

    def test_cancelled_login_returns_to_logged_out(self, panel, session):
        async def hang(request):
            await asyncio.sleep(60)
            return httpx.Response(200, json={})

        panel.handlers["get_user_info"] = hang

        async def run():
            task = asyncio.create_task(session.login(BASE_URL, "alice", "s3cret"))
            while not panel.requests:
                await asyncio.sleep(0)
            assert session.authenticating
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())
        assert session.state == SessionState.LOGGED_OUT
        assert session.credentials is None


class TestRefresh:
    def test_refresh_is_idempotent(self, session):
        _login(session)
        first = session.catalog

        assert asyncio.run(session.refresh()) is True
        assert session.catalog == first
        assert session.loading_data is False

    def test_refresh_keeps_epg_url(self, session, panel):
        _login(session)
        asyncio.run(session.refresh())

        assert session.epg_url == "http://panel.example/epg.xml"
        assert "get_user_info" not in panel.actions()[7:]

    def test_failed_refresh_keeps_catalog(self, session, panel):
        _login(session)
        before = session.catalog
        panel.statuses["get_live_categories"] = 500

        assert asyncio.run(session.refresh()) is False

        assert session.catalog == before
        assert session.state == SessionState.AUTHENTICATED
        assert session.data_error.startswith("Failed to load data")
        assert session.loading_data is False

    def test_successful_refresh_clears_data_error(self, session, panel):
        _login(session)
        panel.statuses["get_series"] = 500
        asyncio.run(session.refresh())
        del panel.statuses["get_series"]

        assert asyncio.run(session.refresh()) is True
        assert session.data_error is None

    def test_refresh_without_session(self, session, panel):
        assert asyncio.run(session.refresh()) is False

        assert session.data_error == "No active session"
        assert session.state == SessionState.LOGGED_OUT
        assert panel.requests == []

    def test_loading_flag_published(self, session):
        _login(session)
        seen = []
        session.subscribe(lambda snapshot: seen.append(snapshot.loading_data))

        asyncio.run(session.refresh())
        assert seen == [True, False]


class TestLogout:
    def test_clears_everything(self, session):
        _login(session)
        asyncio.run(session.logout())

        assert session.snapshot == SessionSnapshot()
        assert session.credentials is None
        assert session.playback_url_builder is None

    def test_logout_from_error_state(self, session, panel):
        panel.statuses["get_user_info"] = 401
        _login(session)
        assert session.state == SessionState.ERROR
        assert session.auth_error

        asyncio.run(session.logout())

        assert session.snapshot == SessionSnapshot()
        assert session.auth_error is None

    def test_logout_supersedes_inflight_login(self, session, panel):
        gate = asyncio.Event()

        async def slow_user_info(request):
            await gate.wait()
            return httpx.Response(200, json={"user_info": {"username": "alice"}})

        panel.handlers["get_user_info"] = slow_user_info

        async def run():
            login = asyncio.create_task(session.login(BASE_URL, "alice", "s3cret"))
            while not panel.requests:
                await asyncio.sleep(0)
            assert session.authenticating
            await session.logout()
            gate.set()
            return await login

        assert asyncio.run(run()) is False
        assert session.snapshot == SessionSnapshot()
        assert session.credentials is None

    def test_logout_supersedes_inflight_refresh(self, session, panel):
        _login(session)
        gate = asyncio.Event()

        async def slow_series(request):
            await gate.wait()
            return httpx.Response(200, json=[])

        panel.handlers["get_series"] = slow_series

        async def run():
            refresh = asyncio.create_task(session.refresh())
            await asyncio.sleep(0.01)
            await session.logout()
            gate.set()
            return await refresh

        assert asyncio.run(run()) is False
        assert session.state == SessionState.LOGGED_OUT
        assert session.catalog.is_empty


class TestObservers:
    def test_observers_receive_snapshots(self, session):
        states = []
        unsubscribe = session.subscribe(lambda snapshot: states.append(snapshot.state))

        _login(session)
        unsubscribe()
        asyncio.run(session.logout())

        assert states == [SessionState.AUTHENTICATING, SessionState.AUTHENTICATED]

    def test_failing_observer_does_not_break_session(self, session):
        def broken(snapshot):
            raise RuntimeError("observer bug")

        session.subscribe(broken)
        assert _login(session) is True
        assert session.authenticated


class TestCollaboratorHelpers:
    def test_build_url(self, session):
        _login(session)
        url = session.build_url(MediaKind.LIVE, "101")
        assert url == f"{BASE_URL}/live/alice/s3cret/101.ts"

    def test_build_url_without_session(self, session):
        with pytest.raises(NoActiveSessionError):
            session.build_url(MediaKind.MOVIE, "1")

    def test_fetch_series_episodes(self, session):
        _login(session)

        series = asyncio.run(session.fetch_series_episodes("301"))

        assert series.name == "The Show"
        assert [(e.season_number, e.episode_number) for e in series.episodes] == [(1, 1), (1, 2), (2, 1)]
        assert [e.id for e in series.episodes] == ["5000", "5001", "5002"]
        assert session.catalog.series[0].episodes == ()

    def test_fetch_series_episodes_without_session(self, session):
        with pytest.raises(NoActiveSessionError):
            asyncio.run(session.fetch_series_episodes("301"))

    def test_fetch_vod_info(self, session, panel):
        panel.dataset["get_vod_info"] = {"info": {"plot": "Cars go fast"}, "movie_data": {"stream_id": 201}}
        _login(session)

        details = asyncio.run(session.fetch_vod_info("201"))

        assert details["info"] == {"plot": "Cars go fast"}
        assert panel.requests[-1].url.params["vod_id"] == "201"

    def test_fetch_vod_info_without_session(self, session):
        with pytest.raises(NoActiveSessionError):
            asyncio.run(session.fetch_vod_info("201"))

    def test_process_wide_session(self):
        reset_session()
        try:
            assert get_session() is get_session()
        finally:
            reset_session()
