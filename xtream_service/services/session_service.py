"""
Session Service

Owns credentials and the current catalog, and exposes login, refresh and
logout as the only mutating operations. Every transition publishes a new
immutable SessionSnapshot, so observers never see a half-updated session.

Superseding: login and logout start a new session generation; refresh
starts a new refresh generation. An operation whose generation is no
longer current when it finishes discards its result.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from xtream_service.exceptions import NoActiveSessionError, XtreamError
from xtream_service.models import Catalog, Credentials, MediaKind, Series
from xtream_service.services.catalog_service import CatalogAggregator, map_series_info
from xtream_service.services.playback_url_service import PlaybackURLBuilder
from xtream_service.services.xtream_api_service import XtreamClient
from xtream_service.utils.identifiers import IdStrategy
from xtream_service.utils.logging_helpers import log_section_end, log_section_start
from xtream_service.utils.url_helpers import sanitize_url_for_logging


logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    LOGGED_OUT = "logged_out"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Everything a UI collaborator may observe about the session."""
    state: SessionState = SessionState.LOGGED_OUT
    auth_error: str | None = None
    loading_data: bool = False
    data_error: str | None = None
    catalog: Catalog = field(default_factory=Catalog.empty)
    username: str | None = None
    base_url: str | None = None

    @property
    def authenticated(self) -> bool:
        return self.state == SessionState.AUTHENTICATED

    @property
    def authenticating(self) -> bool:
        return self.state == SessionState.AUTHENTICATING

    @property
    def epg_url(self) -> str | None:
        return self.catalog.epg_url


SessionObserver = Callable[[SessionSnapshot], None]
ClientFactory = Callable[[Credentials], XtreamClient]


def describe_error(exc: BaseException, prefix: str) -> str:
    """Human-readable message for display."""
    if isinstance(exc, XtreamError):
        return str(exc)
    return f"{prefix}: {exc}"


class XtreamSession:
    """
    Session state machine: LOGGED_OUT, AUTHENTICATING, AUTHENTICATED, ERROR.

    Public operations never raise Xtream errors; failures end in an
    observable error state instead.
    """

    def __init__(
        self,
        client_factory: ClientFactory | None = None,
        *,
        id_strategy: IdStrategy | None = None,
    ) -> None:
        self._client_factory: ClientFactory = client_factory or XtreamClient
        self._id_strategy = id_strategy
        self._snapshot = SessionSnapshot()
        self._credentials: Credentials | None = None
        self._client: XtreamClient | None = None
        self._session_generation = 0
        self._refresh_generation = 0
        self._observers: list[SessionObserver] = []

    # Observation

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def state(self) -> SessionState:
        return self._snapshot.state

    @property
    def authenticated(self) -> bool:
        return self._snapshot.authenticated

    @property
    def authenticating(self) -> bool:
        return self._snapshot.authenticating

    @property
    def auth_error(self) -> str | None:
        return self._snapshot.auth_error

    @property
    def loading_data(self) -> bool:
        return self._snapshot.loading_data

    @property
    def data_error(self) -> str | None:
        return self._snapshot.data_error

    @property
    def catalog(self) -> Catalog:
        return self._snapshot.catalog

    @property
    def epg_url(self) -> str | None:
        return self._snapshot.epg_url

    @property
    def credentials(self) -> Credentials | None:
        return self._credentials

    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        """Register an observer called with every new snapshot; returns an unsubscribe callable."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _publish(self, snapshot: SessionSnapshot) -> None:
        self._snapshot = snapshot
        logger.debug(
            "Session state: %s (loading=%s, auth_error=%s, data_error=%s)",
            snapshot.state.value,
            snapshot.loading_data,
            snapshot.auth_error,
            snapshot.data_error,
        )
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as exc:
                logger.error("Session observer %r failed: %s", observer, exc, exc_info=True)

    def _update(self, **changes) -> None:
        self._publish(replace(self._snapshot, **changes))

    def _detach_client(self) -> XtreamClient | None:
        client, self._client, self._credentials = self._client, None, None
        return client

    @staticmethod
    async def _close_client(client: XtreamClient | None) -> None:
        if client is None:
            return
        try:
            await client.aclose()
        except Exception as exc:
            logger.warning("Failed to close HTTP client: %s", exc)

    # Mutations

    async def login(self, base_url: str, username: str, password: str) -> bool:
        """
        Authenticate and load the catalog

        Any previous session is replaced wholesale. On failure the
        credentials are discarded, the catalog is empty and auth_error holds
        the message.

        Returns:
            True if the session ended AUTHENTICATED by this call
        """
        self._session_generation += 1
        generation = self._session_generation
        previous_client = self._detach_client()
        self._publish(SessionSnapshot(state=SessionState.AUTHENTICATING))
        log_section_start(logger, f"login to {sanitize_url_for_logging(base_url)}")

        client: XtreamClient | None = None
        adopted = False
        try:
            await self._close_client(previous_client)

            credentials = Credentials(base_url, username, password)
            client = self._client_factory(credentials)
            auth = await client.authenticate()
            aggregator = CatalogAggregator(client, id_strategy=self._id_strategy)
            catalog = await aggregator.fetch_catalog(epg_url=auth.epg_url)

            if generation != self._session_generation:
                logger.info("Discarding superseded login for '%s'", username)
                return False

            self._client = client
            self._credentials = credentials
            adopted = True
            self._publish(
                SessionSnapshot(
                    state=SessionState.AUTHENTICATED,
                    catalog=catalog,
                    username=auth.resolved_username,
                    base_url=credentials.base_url,
                )
            )
            log_section_end(logger, f"login as '{auth.resolved_username}'")
            return True
        except asyncio.CancelledError:
            if generation == self._session_generation:
                logger.info("Login for '%s' cancelled", username)
                self._publish(SessionSnapshot())
            raise
        except Exception as exc:
            if generation != self._session_generation:
                logger.info("Superseded login for '%s' failed: %s", username, exc)
                return False
            if client is None:
                logger.warning("Login rejected before any request: %s", exc)
            elif isinstance(exc, XtreamError):
                logger.error("Login failed: %s", exc)
            else:
                logger.error("Unexpected error during login: %s", exc, exc_info=True)
            self._publish(
                SessionSnapshot(
                    state=SessionState.ERROR,
                    auth_error=describe_error(exc, "Login failed"),
                )
            )
            return False
        finally:
            if client is not None and not adopted:
                await self._close_client(client)

    async def refresh(self) -> bool:
        """
        Re-run the catalog fetch for the active session

        On failure the previous catalog is kept and data_error is set.

        Returns:
            True if a new catalog was committed
        """
        client = self._client
        if client is None or self._snapshot.state != SessionState.AUTHENTICATED:
            error = NoActiveSessionError()
            logger.warning("Refresh requested without an active session")
            self._update(loading_data=False, data_error=str(error))
            return False

        session_generation = self._session_generation
        self._refresh_generation += 1
        refresh_generation = self._refresh_generation

        def is_current() -> bool:
            return (
                session_generation == self._session_generation
                and refresh_generation == self._refresh_generation
            )

        self._update(loading_data=True, data_error=None)
        aggregator = CatalogAggregator(client, id_strategy=self._id_strategy)
        try:
            catalog = await aggregator.fetch_catalog(epg_url=self._snapshot.epg_url)
        except asyncio.CancelledError:
            if is_current():
                logger.info("Refresh cancelled")
                self._update(loading_data=False)
            raise
        except Exception as exc:
            if not is_current():
                logger.info("Superseded refresh failed: %s", exc)
                return False
            if isinstance(exc, XtreamError):
                logger.error("Refresh failed, keeping previous catalog: %s", exc)
            else:
                logger.error("Unexpected error during refresh: %s", exc, exc_info=True)
            self._update(
                loading_data=False,
                data_error=describe_error(exc, "Failed to load data"),
            )
            return False

        if not is_current():
            logger.info("Discarding superseded refresh result")
            return False

        self._update(catalog=catalog, loading_data=False, data_error=None)
        return True

    async def logout(self) -> None:
        """Clear credentials and catalog unconditionally."""
        self._session_generation += 1
        client = self._detach_client()
        self._publish(SessionSnapshot())
        await self._close_client(client)
        logger.info("Logged out")

    # Collaborator helpers

    @property
    def playback_url_builder(self) -> PlaybackURLBuilder | None:
        if self._credentials is None:
            return None
        return PlaybackURLBuilder.from_settings(self._credentials)

    def build_url(self, kind: MediaKind | str, stream_id: str, ext: str | None = None) -> str:
        builder = self.playback_url_builder
        if builder is None:
            raise NoActiveSessionError()
        return builder.build_url(kind, stream_id, ext)

    async def fetch_series_episodes(self, series_id: str) -> Series:
        """
        Fetch one series with its episodes

        The catalog is not modified; the caller decides what to do with the
        expanded series.

        Raises:
            NoActiveSessionError: If nobody is logged in
            XtreamError: Any wire client error
        """
        client = self._client
        if client is None:
            raise NoActiveSessionError()

        wire = await client.get_series_info(series_id)
        series = map_series_info(wire, series_id, self._snapshot.catalog.find_series(series_id))
        logger.info("Loaded %s episodes for series %s", len(series.episodes), series_id)
        return series

    async def fetch_vod_info(self, vod_id: str) -> dict[str, Any]:
        """Fetch panel details for one movie as {'info': ..., 'movie_data': ...}."""
        client = self._client
        if client is None:
            raise NoActiveSessionError()
        return await client.get_vod_info(vod_id)


# Process-wide session for the HTTP facade
_session: XtreamSession | None = None


def get_session() -> XtreamSession:
    """
    Get or create the process-wide session.

    Returns:
        The global XtreamSession instance
    """
    global _session
    if _session is None:
        _session = XtreamSession()
    return _session


def reset_session() -> None:
    """
    Reset the process-wide session (mainly for testing).

    WARNING: Only use this in test environments!
    """
    global _session
    _session = None
