"""
Identifier derivation for catalog records

Panels usually send a numeric stream_id / series_id. When they do not, an
identifier is synthesized according to the configured strategy.
"""
import hashlib
import uuid
from typing import Any, Literal


IdStrategy = Literal["random", "stable"]


def synthesize_id(
    media_kind: str,
    name: str,
    category_id: str | None,
    strategy: IdStrategy = "random",
) -> str:
    """
    Generate an identifier for a record the panel sent without one

    Args:
        media_kind: Media kind value ('live', 'movie', 'series')
        name: Record display name
        category_id: Record category id, if any
        strategy: 'random' yields a fresh UUID per call, 'stable' a digest of the inputs

    Returns:
        Identifier string
    """
    if strategy == "stable":
        key = "\x1f".join((media_kind, name, category_id or ""))
        return hashlib.sha1(key.encode("utf-8")).hexdigest()
    return str(uuid.uuid4()).upper()


def derive_record_id(
    wire_id: Any,
    media_kind: str,
    name: str,
    category_id: str | None,
    strategy: IdStrategy = "random",
) -> str:
    """Stringify a numeric wire id, or synthesize one when it is missing."""
    if isinstance(wire_id, int) and not isinstance(wire_id, bool):
        return str(wire_id)
    return synthesize_id(media_kind, name, category_id, strategy)
