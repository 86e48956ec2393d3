import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .errors import NotFoundError, RateLimitedError, UpstreamError
from .github_client import GitHubRestClient
from .graph import DEFAULT_COMMITS_PER_BRANCH
from .models import Contributor, RateLimitStatus, RepoInfo, RepoStats, RepoTree
from .stats_service import DEFAULT_CONTRIBUTORS, StatsService, gh_client
from .tree_service import TreeService

MAX_TREE_LIMIT = 200

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="GitHub Repo Tree API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STARTED_AT = datetime.now(timezone.utc)


@lru_cache(maxsize=1)
def get_github_client() -> GitHubRestClient:
    return GitHubRestClient(get_settings())


@lru_cache(maxsize=1)
def get_tree_service() -> TreeService:
    return TreeService.from_settings(get_github_client(), get_settings())


@lru_cache(maxsize=1)
def get_stats_service() -> StatsService:
    return StatsService(gh_client(get_settings()))


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_COMMITS_PER_BRANCH
    return max(1, min(MAX_TREE_LIMIT, limit))


def _http_error(e: UpstreamError, what: str) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail="Repository not found.")
    if isinstance(e, RateLimitedError):
        return HTTPException(status_code=429, detail="GitHub API rate limited. Set GITHUB_TOKEN and retry.")
    if e.timeout:
        return HTTPException(status_code=504, detail=f"Timeout fetching {what}")
    return HTTPException(status_code=502, detail=f"Failed to fetch {what}: {e}")


@app.get("/api/health")
def health():
    uptime = (datetime.now(timezone.utc) - _STARTED_AT).total_seconds()
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(uptime, 3),
    }


@app.get("/")
def root():
    return {"message": "GitHub Repo Tree API"}


@app.get("/api/repos/{owner}/{repo}/tree", response_model=RepoTree)
def get_repo_tree(
    owner: str,
    repo: str,
    limit: Optional[int] = None,
    service: TreeService = Depends(get_tree_service),
):
    """Commit graph of the first few branches, `limit` commits per branch.

    `limit` is clamped to [1, 200] and defaults to 50.
    """
    try:
        return service.get_repo_tree(owner, repo, clamp_limit(limit))
    except UpstreamError as e:
        logger.error("Error building tree for %s/%s: %s", owner, repo, e)
        raise _http_error(e, "commit tree")


@app.get("/api/github/repo/{owner}/{name}", response_model=RepoInfo)
def get_repo_info(owner: str, name: str, service: StatsService = Depends(get_stats_service)):
    try:
        return service.get_repo_info(owner, name)
    except UpstreamError as e:
        logger.error("Error fetching repository %s/%s: %s", owner, name, e)
        raise _http_error(e, "repository")


@app.get("/api/github/repo/{owner}/{name}/contributors", response_model=List[Contributor])
def get_contributors(
    owner: str,
    name: str,
    limit: int = DEFAULT_CONTRIBUTORS,
    service: StatsService = Depends(get_stats_service),
):
    try:
        return service.get_contributors(owner, name, limit)
    except UpstreamError as e:
        logger.error("Error fetching contributors for %s/%s: %s", owner, name, e)
        raise _http_error(e, "contributors")


@app.get("/api/github/repo/{owner}/{name}/stats", response_model=RepoStats)
def get_repo_stats(owner: str, name: str, service: StatsService = Depends(get_stats_service)):
    try:
        return service.get_repo_stats(owner, name)
    except UpstreamError as e:
        logger.error("Error fetching stats for %s/%s: %s", owner, name, e)
        raise _http_error(e, "repository stats")


@app.get("/api/github/rate-limit", response_model=RateLimitStatus)
def github_rate_limit(client: GitHubRestClient = Depends(get_github_client)):
    try:
        return client.get_rate_limit()
    except UpstreamError as e:
        logger.error("Error fetching rate limit info: %s", e)
        raise _http_error(e, "rate limit info")
