from __future__ import annotations


class UpstreamError(Exception):
    """Failure talking to an upstream service (subgraph or third-party API)."""


class UpstreamUnavailable(UpstreamError):
    """Network error or non-2xx HTTP status."""


class UpstreamQueryError(UpstreamError):
    """Upstream answered, but with GraphQL errors or rows we cannot parse."""


class APIError(Exception):
    """Rendered by the app as ``{"error": message}`` with ``status_code``."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
