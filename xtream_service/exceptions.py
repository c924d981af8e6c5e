"""
Xtream error taxonomy

Every failure the client core can surface derives from XtreamError so the
session layer can convert any of them into a displayable message.
"""
from __future__ import annotations

from collections.abc import Sequence


class XtreamError(Exception):
    """Base class for all Xtream client errors"""
    pass


class InvalidURLError(XtreamError, ValueError):
    """Raised when the panel base URL is not an absolute http(s) URL"""

    def __init__(self, url: str, reason: str = "not an absolute http(s) URL") -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL format: {url!r} ({reason})")


class InvalidCredentialsError(XtreamError, ValueError):
    """Raised when username or password is empty"""
    pass


class InvalidResponseError(XtreamError):
    """Raised when the transport returned something that is not a usable HTTP response"""

    def __init__(self, detail: str = "Invalid response from server") -> None:
        super().__init__(detail)


class HTTPStatusError(XtreamError):
    """Raised for any status other than 200"""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"HTTP error: {status_code}")


class APIError(XtreamError):
    """Raised when the panel answered with a structured error payload"""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DecodingError(XtreamError):
    """Raised when a payload matches none of the known wire shapes"""

    def __init__(self, cause: object, attempted_shapes: Sequence[str] = ()) -> None:
        self.cause = cause
        self.attempted_shapes = tuple(attempted_shapes)
        message = f"Failed to parse response: {cause}"
        if self.attempted_shapes:
            message += f" (tried: {', '.join(self.attempted_shapes)})"
        super().__init__(message)


class NetworkError(XtreamError):
    """Raised for transport-level failures (DNS, connect, timeout)"""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"Network error: {str(cause) or type(cause).__name__}")


class NoActiveSessionError(XtreamError):
    """Raised when an operation needs credentials but nobody is logged in"""

    def __init__(self) -> None:
        super().__init__("No active session")


class AggregateFetchError(XtreamError):
    """Raised when one or more catalog sub-fetches failed"""

    def __init__(self, first_cause: BaseException, errors: Sequence[BaseException] = ()) -> None:
        self.first_cause = first_cause
        self.errors = tuple(errors) or (first_cause,)
        super().__init__(f"Failed to load data: {first_cause}")
