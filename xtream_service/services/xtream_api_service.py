"""
Xtream API Service

Builds authenticated player_api.php requests, issues single-attempt GETs
and decodes the answers through the tolerant decoding pipeline. Transport
failures are translated into the Xtream error taxonomy here, so nothing
above this layer sees httpx exceptions.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from xtream_service.config import settings
from xtream_service.decoding import (
    decode_auth,
    decode_categories,
    decode_series_info,
    decode_series_list,
    decode_streams,
    raise_for_api_error,
)
from xtream_service.exceptions import (
    DecodingError,
    HTTPStatusError,
    InvalidResponseError,
    NetworkError,
)
from xtream_service.models import AuthResult, Credentials
from xtream_service.schemas import (
    XtreamCategoryWire,
    XtreamSeriesInfoWire,
    XtreamSeriesWire,
    XtreamStreamWire,
)
from xtream_service.utils.url_helpers import (
    append_path_segments,
    sanitize_url_for_logging,
    with_query,
)


logger = logging.getLogger(__name__)

API_ENDPOINT = "player_api.php"


def split_action(action: str) -> tuple[str, list[tuple[str, str]]]:
    """
    Split a compact action descriptor into the action and its extra params

    'get_live_streams&category_id=5' -> ('get_live_streams', [('category_id', '5')]).
    Tokens after the first that are not key=value pairs are ignored.
    """
    first, *rest = action.split("&")
    extras: list[tuple[str, str]] = []
    for token in rest:
        key, sep, value = token.partition("=")
        if sep and key:
            extras.append((key, value))
    return first, extras


def scoped_action(action: str, category_id: str | int | None) -> str:
    """Append a category scope to an action descriptor."""
    if category_id is None or category_id == "":
        return action
    return f"{action}&category_id={category_id}"


class XtreamClient:
    """
    Client for the Xtream Codes player API.

    Stateless apart from the credentials it was built with. Every call is a
    single attempt; there is no retry.
    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.credentials = credentials
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                settings.xtream_request_timeout_sec,
                connect=settings.xtream_connect_timeout_sec,
            ),
            follow_redirects=settings.xtream_follow_redirects,
            verify=settings.xtream_verify_tls,
            transport=transport,
        )

    async def __aenter__(self) -> XtreamClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http_client and not self._http.is_closed:
            await self._http.aclose()

    @property
    def api_endpoint(self) -> str:
        return append_path_segments(self.credentials.base_url, API_ENDPOINT)

    def build_api_url(self, action: str, **params: Any) -> str:
        """
        Build the absolute request URL for an action

        Args:
            action: Action name, optionally carrying '&key=value' extras
            **params: Additional query parameters, appended after the extras

        Returns:
            URL with username, password, action and extras as query parameters
        """
        action_name, extras = split_action(action)
        query: list[tuple[str, str]] = [
            ("username", self.credentials.username),
            ("password", self.credentials.password),
            ("action", action_name),
        ]
        query.extend(extras)
        query.extend((key, str(value)) for key, value in params.items() if value is not None)
        return with_query(self.api_endpoint, query)

    async def _request(self, action: str, **params: Any) -> Any:
        url = self.build_api_url(action, **params)
        logger.debug("GET %s", sanitize_url_for_logging(url))

        try:
            response = await self._http.get(url)
        except httpx.TimeoutException as exc:
            logger.warning("Timeout calling %s: %s", action, type(exc).__name__)
            raise NetworkError(exc) from exc
        except (httpx.ProtocolError, httpx.DecodingError, httpx.TooManyRedirects) as exc:
            logger.warning("Invalid response for %s: %s", action, exc)
            raise InvalidResponseError(f"Invalid response from server: {exc}") from exc
        except httpx.RequestError as exc:
            logger.warning("Network error calling %s: %s", action, exc)
            raise NetworkError(exc) from exc

        if response.status_code != 200:
            logger.warning("HTTP %s for %s", response.status_code, action)
            raise HTTPStatusError(response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            logger.warning("Non-JSON body for %s (%s bytes)", action, len(response.content))
            raise DecodingError(exc, ("json",)) from exc

    # Authentication

    async def authenticate(self) -> AuthResult:
        """Authenticate and return the resolved username and optional EPG URL."""
        payload = await self._request("get_user_info")
        result = decode_auth(payload)
        logger.info(
            "Authenticated as '%s' (EPG URL %s)",
            result.resolved_username,
            "present" if result.epg_url else "absent",
        )
        return result

    async def get_epg_url(self) -> str | None:
        return (await self.authenticate()).epg_url

    # Categories

    async def get_live_categories(self) -> list[XtreamCategoryWire]:
        return decode_categories(await self._request("get_live_categories"))

    async def get_vod_categories(self) -> list[XtreamCategoryWire]:
        return decode_categories(await self._request("get_vod_categories"))

    async def get_series_categories(self) -> list[XtreamCategoryWire]:
        return decode_categories(await self._request("get_series_categories"))

    # Streams

    async def get_live_streams(self, category_id: str | None = None) -> list[XtreamStreamWire]:
        payload = await self._request(scoped_action("get_live_streams", category_id))
        return decode_streams(payload)

    async def get_vod_streams(self, category_id: str | None = None) -> list[XtreamStreamWire]:
        payload = await self._request(scoped_action("get_vod_streams", category_id))
        return decode_streams(payload)

    # Series

    async def get_series(self, category_id: str | None = None) -> list[XtreamSeriesWire]:
        payload = await self._request(scoped_action("get_series", category_id))
        return decode_series_list(payload)

    async def get_series_info(self, series_id: str | int) -> XtreamSeriesInfoWire:
        """Fetch one series with its episodes (on-demand, not part of bulk load)."""
        return decode_series_info(await self._request("get_series_info", series_id=series_id))

    async def get_vod_info(self, vod_id: str | int) -> dict[str, Any]:
        """Fetch VOD details; returned loosely typed as {'info': ..., 'movie_data': ...}."""
        payload = await self._request("get_vod_info", vod_id=vod_id)
        raise_for_api_error(payload)
        if not isinstance(payload, dict):
            raise DecodingError(f"expected object, got {type(payload).__name__}", ("vod info object",))
        info = payload.get("info")
        movie_data = payload.get("movie_data")
        return {
            "info": info if isinstance(info, dict) else {},
            "movie_data": movie_data if isinstance(movie_data, dict) else {},
        }
