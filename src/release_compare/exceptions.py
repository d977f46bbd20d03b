"""Exception hierarchy for release-compare.

Everything raised at a fetch boundary derives from ``FetchFailure`` so the
API layer can map the whole family to one upstream error response. An
unresolvable repository or an empty search result are states, not errors,
and have no exception here.
"""

from __future__ import annotations


class ReleaseCompareError(Exception):
    """Base exception for all release-compare errors."""


# ---------------------------------------------------------------------------
# Fetch errors
# ---------------------------------------------------------------------------


class FetchFailure(ReleaseCompareError):
    """Raised when an upstream source could not deliver usable data."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class NetworkFailure(FetchFailure):
    """Raised when a request is rejected or answers with a non-2xx status."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, url=url)
        self.status_code = status_code


class MalformedPayload(FetchFailure):
    """Raised when a response body does not have the expected shape."""
