from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from xtream_service.models import CategoryKind, MediaKind


# Wire shapes (player_api.php)

class WireModel(BaseModel):
    """Base for panel payloads; unknown keys are ignored"""
    model_config = ConfigDict(extra="ignore")


class XtreamCategoryWire(WireModel):
    """Category as listed by get_*_categories"""
    category_id: str
    category_name: str
    parent_id: int | None = None


class XtreamStreamWire(WireModel):
    """Live or VOD stream as listed by get_live_streams / get_vod_streams"""
    num: int | None = None
    name: str
    stream_type: str | None = None
    stream_id: int | None = None
    stream_icon: str | None = None
    epg_channel_id: str | None = None
    added: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    container_extension: str | None = None
    custom_sid: str | None = None
    tv_archive: int | None = None
    direct_source: str | None = None
    tv_archive_duration: int | None = None


class XtreamSeriesWire(WireModel):
    """Series summary as listed by get_series"""
    num: int | None = None
    name: str
    series_id: int | None = None
    cover: str | None = None
    plot: str | None = None
    cast: str | None = None
    director: str | None = None
    genre: str | None = None
    release_date: str | None = None
    rating: str | None = None
    rating_5: float | None = None
    category_id: str | None = None
    category_name: str | None = None
    youtube_trailer: str | None = None
    backdrop_path: list[str] | None = None


class XtreamEpisodeWire(WireModel):
    """Episode entry of get_series_info"""
    id: str
    episode_num: int | None = None
    title: str | None = None
    container_extension: str | None = None
    season: int | None = None
    air_date: str | None = None
    info: dict[str, Any] | None = None

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value: Any) -> Any:
        """Accept numeric episode ids"""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class XtreamSeriesInfoWire(WireModel):
    """Decoded get_series_info response"""
    info: XtreamSeriesWire
    episodes: list[XtreamEpisodeWire] = Field(default_factory=list)


# Collaborator facade

class LoginRequest(BaseModel):
    """Login form submitted by the UI collaborator"""
    base_url: str = Field(..., description="Panel base URL (e.g. 'http://panel.example:8080')")
    username: str = Field(..., min_length=1, description="Panel account username")
    password: str = Field(..., min_length=1, description="Panel account password")


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    kind: CategoryKind


class ChannelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    logo_url: str | None
    category_id: str | None
    stream_id: str


class MovieResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    cover_url: str | None
    category_id: str | None
    stream_id: str
    container_extension: str | None = None


class EpisodeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    season_number: int
    episode_number: int
    stream_id: str
    container_extension: str | None = None


class SeriesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    cover_url: str | None
    category_id: str | None
    episodes: list[EpisodeResponse] = Field(default_factory=list)


class CatalogResponse(BaseModel):
    """Full catalog snapshot"""
    model_config = ConfigDict(from_attributes=True)

    channels: list[ChannelResponse]
    movies: list[MovieResponse]
    series: list[SeriesResponse]
    categories: list[CategoryResponse]
    epg_url: str | None = None


class CatalogItemsResponse(BaseModel):
    """Items of one kind, optionally narrowed to a category and a name search"""
    kind: CategoryKind
    category_id: str | None = None
    query: str | None = None
    items: list[ChannelResponse | MovieResponse | SeriesResponse]


class SessionResponse(BaseModel):
    """Observable session state; never carries the password"""
    state: str
    authenticated: bool
    authenticating: bool
    auth_error: str | None = None
    loading_data: bool
    data_error: str | None = None
    epg_url: str | None = None
    username: str | None = None
    base_url: str | None = None
    channels_count: int = 0
    movies_count: int = 0
    series_count: int = 0
    categories_count: int = 0


class PlaybackURLResponse(BaseModel):
    kind: MediaKind
    stream_id: str
    url: str


class VODInfoResponse(BaseModel):
    """Panel-provided VOD details, passed through loosely typed"""
    vod_id: str
    info: dict[str, Any] = Field(default_factory=dict)
    movie_data: dict[str, Any] = Field(default_factory=dict)
