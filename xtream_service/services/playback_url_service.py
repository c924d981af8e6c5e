"""
Playback URL Service

Derives direct stream URLs of the form
{base_url}/{live|movie|series}/{username}/{password}/{stream_id}.{ext}
from stored credentials. Pure; no network access.
"""
from __future__ import annotations

from dataclasses import dataclass

from xtream_service.config import settings
from xtream_service.models import Channel, Credentials, Episode, MediaKind, Movie
from xtream_service.utils.url_helpers import append_path_segments


@dataclass(frozen=True, slots=True)
class PlaybackURLBuilder:
    """Builds playback URLs for one set of credentials."""
    credentials: Credentials
    live_extension: str = "ts"
    movie_extension: str = "mp4"
    series_extension: str = "mp4"

    @classmethod
    def from_strings(cls, base_url: str, username: str, password: str) -> PlaybackURLBuilder:
        """Validate the inputs and build; raises InvalidURLError for a bad base URL."""
        return cls.from_settings(Credentials(base_url, username, password))

    @classmethod
    def from_settings(cls, credentials: Credentials) -> PlaybackURLBuilder:
        return cls(
            credentials=credentials,
            live_extension=settings.live_stream_extension,
            movie_extension=settings.movie_stream_extension,
            series_extension=settings.series_stream_extension,
        )

    def default_extension(self, kind: MediaKind) -> str:
        if kind == MediaKind.LIVE:
            return self.live_extension
        if kind == MediaKind.MOVIE:
            return self.movie_extension
        return self.series_extension

    def build_url(self, kind: MediaKind | str, stream_id: str, ext: str | None = None) -> str:
        """
        Build a playback URL

        Args:
            kind: Media kind (or its value: 'live', 'movie', 'series')
            stream_id: Stream identifier from the catalog
            ext: File extension; the kind's default when omitted

        Returns:
            Absolute URL whose path ends in kind/username/password/stream_id.ext
        """
        media_kind = MediaKind(kind)
        stream_id = str(stream_id)
        if not stream_id:
            raise ValueError("stream_id must not be empty")
        extension = (ext or "").lstrip(".") or self.default_extension(media_kind)

        return append_path_segments(
            self.credentials.base_url,
            media_kind.value,
            self.credentials.username,
            self.credentials.password,
            f"{stream_id}.{extension}",
        )

    def live_url(self, stream_id: str, ext: str | None = None) -> str:
        return self.build_url(MediaKind.LIVE, stream_id, ext)

    def movie_url(self, stream_id: str, ext: str | None = None) -> str:
        return self.build_url(MediaKind.MOVIE, stream_id, ext)

    def series_url(self, stream_id: str, ext: str | None = None) -> str:
        return self.build_url(MediaKind.SERIES, stream_id, ext)

    def url_for(self, item: Channel | Movie | Episode) -> str:
        """Playback URL for a catalog record, honoring its container extension."""
        if isinstance(item, Channel):
            return self.live_url(item.stream_id)
        if isinstance(item, Movie):
            return self.movie_url(item.stream_id, item.container_extension)
        if isinstance(item, Episode):
            return self.series_url(item.stream_id, item.container_extension)
        raise TypeError(f"Not a playable catalog record: {type(item).__name__}")
