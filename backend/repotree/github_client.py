"""Thin client for the GitHub REST endpoints the commit graph needs."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import Settings
from .errors import NotFoundError, RateLimitedError, UpstreamError
from .models import BranchRef, RateLimitStatus, RawCommit

logger = logging.getLogger(__name__)


class GitHubRestClient:
    """Read-only GitHub REST client.

    Every call returns a single page. There is no retry and no throttling:
    failures surface as ``UpstreamError`` (or one of its subclasses) and it is
    up to the caller to decide what to do with them.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        self._client = httpx.Client(
            base_url=settings.github_api_url,
            headers=self._gh_headers(),
            timeout=settings.github_timeout,
            follow_redirects=True,
            transport=transport,
        )

    def _gh_headers(self) -> dict:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self.settings.user_agent,
        }
        if self.settings.github_token:
            headers["Authorization"] = f"Bearer {self.settings.github_token}"
        return headers

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GitHubRestClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        logger.debug("GET %s params=%s", path, params)
        try:
            resp = self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            logger.warning("Timeout calling GitHub %s: %s", path, e)
            raise UpstreamError(f"Timeout calling GitHub {path}", timeout=True) from e
        except httpx.HTTPError as e:
            logger.warning("Network error calling GitHub %s: %s", path, e)
            raise UpstreamError(f"Error reaching GitHub {path}: {e}") from e

        if resp.status_code == 404:
            raise NotFoundError(f"Not found: {path}", status_code=404)
        if resp.status_code == 429 or (
            resp.status_code == 403 and resp.headers.get("X-RateLimit-Remaining") == "0"
        ):
            logger.warning("GitHub API rate limit exceeded on %s", path)
            raise RateLimitedError(
                "GitHub API rate limited. Set GITHUB_TOKEN and retry.",
                status_code=resp.status_code,
            )
        if not resp.is_success:
            logger.warning("GitHub %s answered %s", path, resp.status_code)
            raise UpstreamError(
                f"GitHub {path} answered {resp.status_code}: {_error_message(resp)}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            logger.warning("GitHub %s answered %s with a non-JSON body", path, resp.status_code)
            raise UpstreamError(f"Invalid JSON from GitHub {path}", status_code=resp.status_code) from e

    def list_branch_heads(self, owner: str, repo: str) -> List[BranchRef]:
        try:
            data = self._get(f"/repos/{owner}/{repo}/git/refs/heads")
        except UpstreamError as e:
            # 409 "Git Repository is empty"
            if e.status_code == 409:
                return []
            raise
        # A single matching ref comes back as an object rather than a list
        if isinstance(data, dict):
            data = [data]
        return [BranchRef.from_api(it) for it in data or [] if isinstance(it, dict)]

    def list_commits(self, owner: str, repo: str, branch: str, per_page: int) -> List[RawCommit]:
        data = self._get(
            f"/repos/{owner}/{repo}/commits",
            params={"sha": branch, "per_page": per_page},
        )
        return [RawCommit.from_api(it) for it in data or [] if isinstance(it, dict)]

    def get_rate_limit(self) -> RateLimitStatus:
        data = self._get("/rate_limit") or {}
        core = (data.get("resources") or {}).get("core") or data.get("rate") or {}
        return RateLimitStatus(
            limit=core.get("limit", 0),
            remaining=core.get("remaining", 0),
            reset=core.get("reset", 0),
            used=core.get("used", 0),
        )


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.text[:200]
