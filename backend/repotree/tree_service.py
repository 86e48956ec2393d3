"""Builds and caches commit graphs for GitHub repositories."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Protocol, Sequence

from .cache import LRUTreeCache, TreeCache, tree_cache_key
from .config import Settings
from .graph import DEFAULT_COMMITS_PER_BRANCH, MAX_BRANCHES, build_graph, edge_counts, select_branches
from .models import BranchRef, RawCommit, RepoTree
from .singleflight import SingleFlight

logger = logging.getLogger(__name__)


class CommitSource(Protocol):
    def list_branch_heads(self, owner: str, repo: str) -> List[BranchRef]: ...

    def list_commits(self, owner: str, repo: str, branch: str, per_page: int) -> List[RawCommit]: ...


class TreeService:
    """Serves `RepoTree`s for owner/repo pairs.

    On a cache hit no upstream call is made. On a miss, refs are listed, at
    most `max_branches` branches are kept, one page of commits is fetched per
    branch and the graph is rebuilt from scratch. Concurrent misses for the
    same repository share one fetch. Nothing is cached when any upstream call
    fails.
    """

    def __init__(
        self,
        client: CommitSource,
        cache: Optional[TreeCache] = None,
        max_branches: int = MAX_BRANCHES,
        fetch_workers: int = MAX_BRANCHES,
    ):
        self.client = client
        self.cache = cache if cache is not None else LRUTreeCache()
        self.max_branches = max_branches
        self.fetch_workers = max(1, fetch_workers)
        self._flights: SingleFlight[RepoTree] = SingleFlight()

    @classmethod
    def from_settings(cls, client: CommitSource, settings: Settings) -> "TreeService":
        cache = LRUTreeCache(
            ttl_seconds=settings.tree_cache_ttl,
            max_entries=settings.tree_cache_max_entries,
        )
        return cls(
            client,
            cache=cache,
            max_branches=settings.tree_max_branches,
            fetch_workers=settings.tree_fetch_workers,
        )

    def get_repo_tree(
        self,
        owner: str,
        repo: str,
        max_commits_per_branch: Optional[int] = DEFAULT_COMMITS_PER_BRANCH,
    ) -> RepoTree:
        if max_commits_per_branch is None:
            max_commits_per_branch = DEFAULT_COMMITS_PER_BRANCH
        if max_commits_per_branch < 1:
            raise ValueError("max_commits_per_branch must be a positive integer")

        key = tree_cache_key(owner, repo)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Tree cache hit for %s", key)
            return cached

        return self._flights.do(key, lambda: self._refresh(key, owner, repo, max_commits_per_branch))

    def _refresh(self, key: str, owner: str, repo: str, per_branch: int) -> RepoTree:
        # Another flight may have filled the cache between our miss and now
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        logger.info("Building commit tree for %s (up to %d commits per branch)", key, per_branch)
        refs = self.client.list_branch_heads(owner, repo)
        branches = select_branches(refs, self.max_branches)
        commits_by_branch = self._fetch_commits(owner, repo, branches, per_branch)

        tree = build_graph(branches, commits_by_branch)
        repeated = sum(n - 1 for n in edge_counts(tree).values() if n > 1)
        logger.info(
            "Built tree for %s: %d branches, %d nodes, %d edges (%d repeated)",
            key, len(tree.branches), len(tree.nodes), len(tree.edges), repeated,
        )
        self.cache.put(key, tree)
        return tree

    def _fetch_commits(
        self, owner: str, repo: str, branches: Sequence[str], per_branch: int
    ) -> Dict[str, List[RawCommit]]:
        if not branches:
            return {}
        if len(branches) == 1 or self.fetch_workers == 1:
            return {b: self.client.list_commits(owner, repo, b, per_branch) for b in branches}

        # Pages are keyed by branch, so completion order does not matter;
        # the builder walks branches in selection order.
        workers = min(self.fetch_workers, len(branches))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tree-fetch") as pool:
            pages = pool.map(lambda b: self.client.list_commits(owner, repo, b, per_branch), branches)
            return dict(zip(branches, pages))
