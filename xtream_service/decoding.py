"""
Tolerant decoding of Xtream panel payloads

Real panels diverge from the nominal schema: fields go missing, numbers
arrive as strings (and the other way around), and lists sometimes come back
as objects keyed by id. Each response kind is decoded through an ordered
list of wire shapes: the strict schema first, then the fallbacks. The first
shape that matches wins; if none does, a DecodingError names every shape
that was tried.
"""
from __future__ import annotations

import logging
import types
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel, TypeAdapter, ValidationError

from xtream_service.exceptions import APIError, DecodingError
from xtream_service.models import AuthResult
from xtream_service.schemas import (
    XtreamCategoryWire,
    XtreamEpisodeWire,
    XtreamSeriesInfoWire,
    XtreamSeriesWire,
    XtreamStreamWire,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

# Some panels wrap the whole get_user_info answer one level deep
_AUTH_WRAPPER_KEYS = ("data", "result", "response")


class ShapeMismatch(ValueError):
    """Raised by a shape decoder when the payload does not have its shape"""
    pass


@dataclass(frozen=True, slots=True)
class WireShape(Generic[T]):
    name: str
    decode: Callable[[Any], T]


def decode_with_fallbacks(payload: Any, shapes: Sequence[WireShape[T]], what: str) -> T:
    """
    Decode payload with the first matching shape

    Args:
        payload: Parsed JSON value
        shapes: Candidate shapes in priority order
        what: Response kind, used in log lines

    Returns:
        Result of the first shape that accepted the payload

    Raises:
        DecodingError: If no shape accepted the payload
    """
    attempted: list[str] = []
    first_error: Exception | None = None

    for shape in shapes:
        attempted.append(shape.name)
        try:
            result = shape.decode(payload)
        except (ValidationError, ShapeMismatch) as exc:
            logger.debug("Decoding %s as '%s' failed: %s", what, shape.name, exc)
            if first_error is None:
                first_error = exc
            continue

        if len(attempted) > 1:
            logger.warning(
                "Decoded %s with fallback shape '%s' after %s failed",
                what,
                shape.name,
                ", ".join(attempted[:-1]),
            )
        return result

    logger.error("Unrecognized %s payload, tried: %s", what, ", ".join(attempted))
    raise DecodingError(first_error or f"unrecognized {what} payload", attempted)


def raise_for_api_error(payload: Any) -> None:
    """
    Raise APIError if the payload is a structured panel error

    A structured error is an object whose 'message' or 'error' member is a
    non-empty string and that carries no nested data.
    """
    if not isinstance(payload, dict):
        return
    if any(isinstance(value, (dict, list)) for value in payload.values()):
        return
    for key in ("message", "error"):
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            raise APIError(value.strip())


# Loose field coercion

def _target_type(annotation: Any) -> Any:
    """Strip Optional[...] from a field annotation"""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        return args[0] if len(args) == 1 else Any
    return annotation


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _coerce_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    return None


def coerce_value(value: Any, annotation: Any) -> Any:
    """Coerce a loosely-typed JSON value towards a field annotation, or None."""
    if value is None:
        return None

    target = _target_type(annotation)
    origin = get_origin(target)

    if target is str:
        return _coerce_str(value)
    if target is int:
        return _coerce_int(value)
    if target is float:
        return _coerce_float(value)
    if origin is list:
        if not isinstance(value, list):
            return None
        (item_type,) = get_args(target) or (Any,)
        items = [coerce_value(item, item_type) for item in value]
        return [item for item in items if item is not None]
    if origin is dict or target is dict:
        return value if isinstance(value, dict) else None
    return value


def loosen(model: type[M], item: dict[str, Any], **overrides: Any) -> M:
    """
    Build a wire model from a loosely-typed object

    Optional fields that cannot be coerced are dropped; a required field
    that cannot be coerced fails validation.
    """
    data: dict[str, Any] = {}
    for name, field_info in model.model_fields.items():
        if name in overrides and overrides[name] is not None:
            data[name] = overrides[name]
            continue
        coerced = coerce_value(item.get(name), field_info.annotation)
        if coerced is not None:
            data[name] = coerced
    return model.model_validate(data)


def _require_object_list(payload: Any) -> list[dict[str, Any]]:
    if not isinstance(payload, list):
        raise ShapeMismatch(f"expected array, got {type(payload).__name__}")
    if not all(isinstance(item, dict) for item in payload):
        raise ShapeMismatch("array contains non-object elements")
    return payload


def _require_keyed_object(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise ShapeMismatch(f"expected object keyed by id, got {type(payload).__name__}")
    return payload


def _loosen_each(
    model: type[M],
    items: list[tuple[str | None, dict[str, Any]]],
    what: str,
    id_field: str | None = None,
) -> list[M]:
    """Loosen every (key, object) pair, skipping records that stay invalid"""
    results: list[M] = []
    skipped = 0
    for key, item in items:
        overrides: dict[str, Any] = {}
        if id_field and key is not None and _coerce_int(item.get(id_field)) is None:
            overrides[id_field] = _coerce_int(key)
        try:
            results.append(loosen(model, item, **overrides))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.warning("Skipped %s malformed %s record(s)", skipped, what)
    return results


# Categories

_category_list_adapter = TypeAdapter(list[XtreamCategoryWire])


def _categories_loose_array(payload: Any) -> list[XtreamCategoryWire]:
    return [
        XtreamCategoryWire(
            category_id=_coerce_str(item.get("category_id")) or str(index),
            category_name=_coerce_str(item.get("category_name")) or "Unknown",
            parent_id=_coerce_int(item.get("parent_id")),
        )
        for index, item in enumerate(_require_object_list(payload))
    ]


def _categories_keyed_object(payload: Any) -> list[XtreamCategoryWire]:
    return [
        XtreamCategoryWire(
            category_id=_coerce_str(item.get("category_id")) or key,
            category_name=_coerce_str(item.get("category_name")) or "Unknown",
            parent_id=_coerce_int(item.get("parent_id")),
        )
        for key, item in _require_keyed_object(payload).items()
        if isinstance(item, dict)
    ]


CATEGORY_SHAPES: tuple[WireShape[list[XtreamCategoryWire]], ...] = (
    WireShape("strict array", _category_list_adapter.validate_python),
    WireShape("loose array", _categories_loose_array),
    WireShape("id-keyed object", _categories_keyed_object),
)


def decode_categories(payload: Any) -> list[XtreamCategoryWire]:
    raise_for_api_error(payload)
    return decode_with_fallbacks(payload, CATEGORY_SHAPES, "categories")


# Streams and series lists

def _list_shapes(model: type[M], what: str, id_field: str) -> tuple[WireShape[list[M]], ...]:
    adapter = TypeAdapter(list[model])

    def loose_array(payload: Any) -> list[M]:
        return _loosen_each(model, [(None, item) for item in _require_object_list(payload)], what)

    def keyed_object(payload: Any) -> list[M]:
        entries = [
            (key, item)
            for key, item in _require_keyed_object(payload).items()
            if isinstance(item, dict)
        ]
        return _loosen_each(model, entries, what, id_field=id_field)

    return (
        WireShape("strict array", adapter.validate_python),
        WireShape("loose array", loose_array),
        WireShape("id-keyed object", keyed_object),
    )


STREAM_SHAPES = _list_shapes(XtreamStreamWire, "stream", "stream_id")
SERIES_SHAPES = _list_shapes(XtreamSeriesWire, "series", "series_id")


def decode_streams(payload: Any) -> list[XtreamStreamWire]:
    raise_for_api_error(payload)
    return decode_with_fallbacks(payload, STREAM_SHAPES, "streams")


def decode_series_list(payload: Any) -> list[XtreamSeriesWire]:
    raise_for_api_error(payload)
    return decode_with_fallbacks(payload, SERIES_SHAPES, "series")


# Series detail

_episode_list_adapter = TypeAdapter(list[XtreamEpisodeWire])


def _episodes_strict_array(payload: Any) -> list[XtreamEpisodeWire]:
    return _episode_list_adapter.validate_python(payload)


def _episodes_loose_array(payload: Any) -> list[XtreamEpisodeWire]:
    items = _require_object_list(payload)
    return _loosen_each(XtreamEpisodeWire, [(None, item) for item in items], "episode")


def _episodes_season_keyed(payload: Any) -> list[XtreamEpisodeWire]:
    """Episodes grouped as {"1": [...], "2": [...]} by season number"""
    seasons = _require_keyed_object(payload)
    episodes: list[XtreamEpisodeWire] = []
    for season_key, entries in seasons.items():
        if isinstance(entries, dict):
            entries = list(entries.values())
        if not isinstance(entries, list):
            continue
        season = _coerce_int(season_key)
        objects = [(None, entry) for entry in entries if isinstance(entry, dict)]
        for episode in _loosen_each(XtreamEpisodeWire, objects, "episode"):
            if episode.season is None and season is not None:
                episode = episode.model_copy(update={"season": season})
            episodes.append(episode)
    return episodes


EPISODE_SHAPES: tuple[WireShape[list[XtreamEpisodeWire]], ...] = (
    WireShape("strict array", _episodes_strict_array),
    WireShape("loose array", _episodes_loose_array),
    WireShape("season-keyed object", _episodes_season_keyed),
)


def decode_series_info(payload: Any) -> XtreamSeriesInfoWire:
    """Decode a get_series_info response into series info plus a flat episode list."""
    raise_for_api_error(payload)
    if not isinstance(payload, dict):
        raise DecodingError(
            f"expected object, got {type(payload).__name__}", ("series info object",)
        )

    raw_info = payload.get("info")
    if not isinstance(raw_info, dict):
        raise DecodingError("missing series info", ("series info object",))
    info = decode_with_fallbacks(
        raw_info,
        (
            WireShape("strict object", XtreamSeriesWire.model_validate),
            WireShape("loose object", lambda value: loosen(XtreamSeriesWire, value)),
        ),
        "series info",
    )

    raw_episodes = payload.get("episodes")
    episodes: list[XtreamEpisodeWire] = []
    if raw_episodes:
        episodes = decode_with_fallbacks(raw_episodes, EPISODE_SHAPES, "episodes")

    return XtreamSeriesInfoWire(info=info, episodes=episodes)


# Authentication

def _locate_user_info(root: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]] | None:
    """Return (container, user_info) for the root or a one-level wrapper"""
    user_info = root.get("user_info")
    if isinstance(user_info, dict):
        return root, user_info
    for key in _AUTH_WRAPPER_KEYS:
        wrapped = root.get(key)
        if isinstance(wrapped, dict) and isinstance(wrapped.get("user_info"), dict):
            return wrapped, wrapped["user_info"]
    return None


def _epg_url_from(*candidates: Any) -> str | None:
    for server_info in candidates:
        if isinstance(server_info, dict):
            epg_url = server_info.get("epg_url")
            if isinstance(epg_url, str) and epg_url.strip():
                return epg_url.strip()
    return None


def decode_auth(payload: Any) -> AuthResult:
    """
    Decode a get_user_info response

    user_info.username is required. server_info.epg_url is optional and is
    also looked up under user_info, where some panels nest server_info.

    Raises:
        APIError: If the panel rejected the credentials or sent an error payload
        DecodingError: If user_info.username cannot be found
    """
    if not isinstance(payload, dict):
        raise DecodingError("Invalid JSON", ("user_info object",))

    located = _locate_user_info(payload)
    if located is None:
        raise_for_api_error(payload)
        raise DecodingError("Missing user_info", ("user_info object", "wrapped user_info object"))

    container, user_info = located
    if str(user_info.get("auth", "")).strip() == "0":
        message = user_info.get("message")
        raise APIError(message if isinstance(message, str) and message else "Authentication failed")

    username = user_info.get("username")
    if not isinstance(username, str) or not username:
        raise DecodingError("Missing user_info.username", ("user_info object",))

    epg_url = _epg_url_from(container.get("server_info"), user_info.get("server_info"))
    return AuthResult(resolved_username=username, epg_url=epg_url)
