"""
Error taxonomy for the search core.

Every failure that crosses a component boundary is one of these types, so
callers can branch on the kind of failure instead of parsing messages.
"""

from datetime import timedelta
from typing import Optional


class SearchCoreError(Exception):
    """Base class for all search core errors."""


class RateLimited(SearchCoreError):
    """Too many searches within the rolling window.

    Attributes:
        retry_after: Time until the next search will be admitted
    """

    def __init__(self, retry_after: timedelta):
        self.retry_after = retry_after
        seconds = max(0, int(round(retry_after.total_seconds())))
        super().__init__(f"Rate limit exceeded. Please wait {seconds} seconds.")


class SearchFailed(SearchCoreError):
    """A search could not be answered by any channel.

    The message is keyed to the primary failure; the fallback failure is
    kept for diagnostics only.

    Attributes:
        underlying: The primary channel failure
        fallback_error: The fallback channel failure, if the fallback ran
    """

    def __init__(self, underlying: BaseException, fallback_error: Optional[BaseException] = None):
        self.underlying = underlying
        self.fallback_error = fallback_error
        super().__init__(f"Search failed: {underlying}")


class CircuitOpen(SearchCoreError):
    """The primary channel is temporarily skipped after repeated failures."""

    def __init__(self, reset_in: timedelta):
        self.reset_in = reset_in
        seconds = max(0, int(round(reset_in.total_seconds())))
        super().__init__(f"Service temporarily unavailable. Retry in {seconds} seconds.")


class PermissionDenied(SearchCoreError):
    """Speech recognition permission was not granted."""

    def __init__(self, message: str = "Speech recognition permission denied"):
        super().__init__(message)


class VoiceRecognitionFailed(SearchCoreError):
    """The speech engine failed or is unavailable."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class PersistenceFailed(SearchCoreError):
    """Reading or writing search history failed. Logged, never surfaced."""

    def __init__(self, key: str, underlying: BaseException):
        self.key = key
        self.underlying = underlying
        super().__init__(f"Persistence failed for '{key}': {underlying}")
