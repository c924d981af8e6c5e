"""
URL utilities

Base URL validation, path-segment joining, query assembly and credential
masking for logs.
"""
from collections.abc import Iterable
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

from xtream_service.exceptions import InvalidURLError


# RFC 3986 pchar minus "&" and "+", which some panels decode in paths
_PATH_SEGMENT_SAFE = "-._~!$'()*,;=:@"

_SENSITIVE_QUERY_KEYS = {"password"}


def validate_base_url(url: str) -> str:
    """
    Validate a panel base URL and return it in normalized form

    Args:
        url: Base URL as typed by the user (e.g. 'http://panel.example:8080')

    Returns:
        The URL without query, fragment or trailing slash

    Raises:
        InvalidURLError: If the value is not an absolute http(s) URL with a host
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidURLError(str(url), "empty URL")

    candidate = url.strip()
    if any(ch.isspace() for ch in candidate):
        raise InvalidURLError(url, "contains whitespace")

    try:
        parts = urlsplit(candidate)
        # Accessing port validates it
        parts.port
    except ValueError as exc:
        raise InvalidURLError(url, str(exc)) from exc

    if parts.scheme.lower() not in ("http", "https"):
        raise InvalidURLError(url, "scheme must be http or https")
    if not parts.hostname:
        raise InvalidURLError(url, "missing host")

    return urlunsplit((parts.scheme.lower(), parts.netloc, parts.path.rstrip("/"), "", ""))


def encode_path_segment(segment: str) -> str:
    """Percent-encode a single path segment, including any '/'"""
    return quote(segment, safe=_PATH_SEGMENT_SAFE)


def append_path_segments(base_url: str, *segments: str) -> str:
    """
    Append unencoded path segments to a validated base URL

    Each segment is encoded on its own so separators inside a segment never
    split it.
    """
    parts = urlsplit(base_url)
    encoded = "/".join(encode_path_segment(segment) for segment in segments)
    path = f"{parts.path.rstrip('/')}/{encoded}"
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def with_query(url: str, params: Iterable[tuple[str, str]]) -> str:
    """Attach ordered query parameters to a URL, replacing any existing query."""
    parts = urlsplit(url)
    query = urlencode(list(params), quote_via=quote)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))


def path_segments(url: str) -> list[str]:
    """Return the still-encoded, non-empty path segments of a URL."""
    return [segment for segment in urlsplit(url).path.split("/") if segment]


def sanitize_url_for_logging(url: str) -> str:
    """Mask credentials in a URL for safe logging."""
    try:
        parts = urlsplit(str(url))
    except ValueError:
        return "<unparseable url>"

    netloc = parts.netloc
    if "@" in netloc:
        netloc = f"***:***@{netloc.rsplit('@', 1)[1]}"

    query = parts.query
    if query:
        masked = [
            (key, "***" if key.lower() in _SENSITIVE_QUERY_KEYS else value)
            for key, value in parse_qsl(query, keep_blank_values=True)
        ]
        query = urlencode(masked, safe="*")

    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))
