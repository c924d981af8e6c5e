"""
Domain models for the Xtream client core

Normalized, immutable records produced from the panel's wire shapes. The
catalog is replaced as a whole, never mutated field by field.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from xtream_service.exceptions import InvalidCredentialsError
from xtream_service.utils.url_helpers import validate_base_url


class MediaKind(str, Enum):
    """Playable media kind; the value is the playback path segment."""
    LIVE = "live"
    MOVIE = "movie"
    SERIES = "series"


class CategoryKind(str, Enum):
    """Category family a category id belongs to. Ids are unique per kind only."""
    LIVE = "live"
    VOD = "vod"
    SERIES = "series"


@dataclass(frozen=True, slots=True)
class Credentials:
    """Panel endpoint plus account; validated on construction."""
    base_url: str
    username: str
    password: str = field(repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", validate_base_url(self.base_url))
        if not self.username:
            raise InvalidCredentialsError("Username must not be empty")
        if not self.password:
            raise InvalidCredentialsError("Password must not be empty")


@dataclass(frozen=True, slots=True)
class AuthResult:
    resolved_username: str
    epg_url: str | None = None


@dataclass(frozen=True, slots=True)
class Category:
    id: str
    name: str
    kind: CategoryKind


@dataclass(frozen=True, slots=True)
class Channel:
    """Live channel; id and stream_id come from the same wire identifier."""
    id: str
    name: str
    logo_url: str | None
    category_id: str | None
    stream_id: str


@dataclass(frozen=True, slots=True)
class Movie:
    """VOD title."""
    id: str
    title: str
    cover_url: str | None
    category_id: str | None
    stream_id: str
    container_extension: str | None = None


@dataclass(frozen=True, slots=True)
class Episode:
    id: str
    title: str
    season_number: int
    episode_number: int
    stream_id: str
    container_extension: str | None = None


@dataclass(frozen=True, slots=True)
class Series:
    """Series summary. Episodes stay empty until a series-detail fetch."""
    id: str
    name: str
    cover_url: str | None
    category_id: str | None
    episodes: tuple[Episode, ...] = ()


CatalogItem = Union[Channel, Movie, Series]


def display_name(item: CatalogItem) -> str:
    """Name shown for a catalog item; movies carry a title instead."""
    if isinstance(item, Movie):
        return item.title
    return item.name


@dataclass(frozen=True, slots=True)
class Catalog:
    """Normalized snapshot of everything the panel offers."""
    channels: tuple[Channel, ...] = ()
    movies: tuple[Movie, ...] = ()
    series: tuple[Series, ...] = ()
    categories: tuple[Category, ...] = ()
    epg_url: str | None = None

    @classmethod
    def empty(cls) -> Catalog:
        return cls()

    @property
    def is_empty(self) -> bool:
        return not (self.channels or self.movies or self.series or self.categories)

    def categories_for(self, kind: CategoryKind) -> tuple[Category, ...]:
        return tuple(category for category in self.categories if category.kind == kind)

    def items_for(self, kind: CategoryKind) -> tuple[CatalogItem, ...]:
        if kind == CategoryKind.LIVE:
            return self.channels
        if kind == CategoryKind.VOD:
            return self.movies
        return self.series

    def items_in_category(self, kind: CategoryKind, category_id: str) -> tuple[CatalogItem, ...]:
        """Items of one kind whose category id equals category_id (plain string equality)."""
        return tuple(item for item in self.items_for(kind) if item.category_id == category_id)

    def search(
        self,
        kind: CategoryKind,
        query: str,
        category_id: str | None = None,
    ) -> tuple[CatalogItem, ...]:
        """
        Items of one kind whose display name contains query, ignoring case.

        A blank query matches everything; category_id narrows the result to
        one category first.
        """
        items = self.items_for(kind) if category_id is None else self.items_in_category(kind, category_id)
        needle = query.strip().casefold()
        if not needle:
            return items
        return tuple(item for item in items if needle in display_name(item).casefold())

    def uncategorized(self, kind: CategoryKind) -> tuple[CatalogItem, ...]:
        """
        Items of one kind that cannot be grouped under a fetched category.

        Covers both items without a category id and items referencing a
        category the panel did not list; they are shown ungrouped.
        """
        known = {category.id for category in self.categories_for(kind)}
        return tuple(
            item for item in self.items_for(kind)
            if item.category_id is None or item.category_id not in known
        )

    def find_series(self, series_id: str) -> Series | None:
        for item in self.series:
            if item.id == series_id:
                return item
        return None
