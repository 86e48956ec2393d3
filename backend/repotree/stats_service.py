"""Repository info, contributors and headline numbers for the dashboard cards."""

import logging
from typing import Callable, List, Optional, TypeVar

import requests
from github import Auth, Github
from github.GithubException import GithubException, RateLimitExceededException

from .config import Settings
from .errors import NotFoundError, RateLimitedError, UpstreamError
from .models import Contributor, RepoInfo, RepoStats

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CONTRIBUTORS = 30
MAX_CONTRIBUTORS = 100


def gh_client(settings: Settings) -> Github:
    # Configure a network timeout to avoid hanging requests
    timeout = int(settings.github_timeout)
    if settings.github_token:
        return Github(
            auth=Auth.Token(settings.github_token),
            base_url=settings.github_api_url,
            timeout=timeout,
            user_agent=settings.user_agent,
        )
    # unauthenticated, lower rate limit
    return Github(base_url=settings.github_api_url, timeout=timeout, user_agent=settings.user_agent)


def _rate_limited(ge: GithubException) -> bool:
    if isinstance(ge, RateLimitExceededException) or ge.status == 429:
        return True
    headers = {k.lower(): v for k, v in (ge.headers or {}).items()}
    return ge.status == 403 and headers.get("x-ratelimit-remaining") == "0"


def _translate(ge: GithubException, full_name: str) -> UpstreamError:
    message = ge.data.get("message") if isinstance(ge.data, dict) else None
    if ge.status == 404:
        return NotFoundError(f"Repository not found: {full_name}", status_code=404)
    if _rate_limited(ge):
        return RateLimitedError(
            "GitHub API rate limited. Set GITHUB_TOKEN and retry.", status_code=ge.status
        )
    return UpstreamError(message or str(ge), status_code=ge.status)


def _network_call(fn: Callable[[], T], what: str) -> T:
    """Run a PyGithub call, turning transport failures into UpstreamError."""
    try:
        return fn()
    except requests.exceptions.Timeout as e:
        logger.warning("Timeout fetching %s: %s", what, e)
        raise UpstreamError(f"Timeout fetching {what}", timeout=True) from e
    except requests.exceptions.RequestException as e:
        logger.warning("Network error fetching %s: %s", what, e)
        raise UpstreamError(f"Error reaching GitHub for {what}: {e}") from e


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class StatsService:
    def __init__(self, gh: Github):
        self.gh = gh

    def _repo(self, owner: str, name: str):
        full_name = f"{owner}/{name}"
        try:
            return _network_call(lambda: self.gh.get_repo(full_name), full_name)
        except GithubException as ge:
            logger.warning("Failed to fetch repository %s: %s", full_name, ge)
            raise _translate(ge, full_name) from ge

    def _count(self, fn: Callable[[], int], what: str) -> int:
        # GitHub refuses contributor listings for very large histories
        try:
            return _network_call(fn, what)
        except GithubException as ge:
            logger.warning("Failed to count %s: %s", what, ge)
            return 0

    def get_repo_info(self, owner: str, name: str) -> RepoInfo:
        repo = self._repo(owner, name)
        return RepoInfo(
            id=repo.id,
            name=repo.name,
            full_name=repo.full_name,
            description=repo.description,
            html_url=repo.html_url,
            language=repo.language,
            default_branch=repo.default_branch,
            stars=repo.stargazers_count or 0,
            forks=repo.forks_count or 0,
            open_issues=repo.open_issues_count or 0,
            updated_at=_iso(repo.updated_at),
            pushed_at=_iso(repo.pushed_at),
        )

    def get_contributors(self, owner: str, name: str, limit: int = DEFAULT_CONTRIBUTORS) -> List[Contributor]:
        """Top contributors by commit count; empty when GitHub refuses the listing."""
        repo = self._repo(owner, name)
        full_name = f"{owner}/{name}"
        limit = max(1, min(MAX_CONTRIBUTORS, limit))

        def top() -> List[Contributor]:
            out = []
            for c in repo.get_contributors()[:limit]:
                out.append(Contributor(
                    login=c.login,
                    contributions=getattr(c, "contributions", 0) or 0,
                    avatar_url=getattr(c, "avatar_url", None),
                    profile_url=getattr(c, "html_url", None),
                ))
            return out

        try:
            return _network_call(top, f"contributors of {full_name}")
        except GithubException as ge:
            logger.warning("Failed to list contributors for %s: %s", full_name, ge)
            return []

    def get_repo_stats(self, owner: str, name: str) -> RepoStats:
        full_name = f"{owner}/{name}"
        repo = self._repo(owner, name)
        contributors = self._count(lambda: repo.get_contributors().totalCount, f"contributors of {full_name}")
        open_prs = self._count(lambda: repo.get_pulls(state="open").totalCount, f"open pull requests of {full_name}")

        return RepoStats(
            full_name=repo.full_name,
            description=repo.description,
            html_url=repo.html_url,
            language=repo.language,
            stars=repo.stargazers_count or 0,
            forks=repo.forks_count or 0,
            open_issues=repo.open_issues_count or 0,
            contributors=contributors,
            open_pull_requests=open_prs,
            updated_at=_iso(repo.updated_at),
        )
