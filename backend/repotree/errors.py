"""Errors raised while talking to the GitHub API."""

from typing import Optional


class UpstreamError(Exception):
    """Non-2xx answer or network failure from the GitHub API."""

    def __init__(self, message: str, status_code: Optional[int] = None, timeout: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.timeout = timeout


class NotFoundError(UpstreamError):
    """GitHub reports that the owner or repository does not exist."""


class RateLimitedError(UpstreamError):
    """GitHub refused the call because the rate limit is exhausted."""
