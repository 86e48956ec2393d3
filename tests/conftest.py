import threading
from typing import Dict, List, Optional

import pytest

from repotree.errors import UpstreamError
from repotree.models import BranchRef, RawCommit


def commit(sha: str, parents=(), name: Optional[str] = "Dev", login: Optional[str] = None,
           date: Optional[str] = "2024-05-01T10:00:00Z", message: str = "msg") -> RawCommit:
    return RawCommit(
        sha=sha,
        message=message,
        author_name=name,
        author_date=date,
        author_login=login,
        parents=list(parents),
    )


def head(name: str, sha: str = "0" * 40) -> BranchRef:
    return BranchRef(ref=f"refs/heads/{name}", sha=sha)


def api_commit(sha: str, parents=(), name="Dev", login="dev", date="2024-05-01T10:00:00Z") -> dict:
    """Commit in the shape the GitHub commits endpoint returns it."""
    return {
        "sha": sha,
        "commit": {"message": f"commit {sha}", "author": {"name": name, "date": date}},
        "author": {"login": login} if login else None,
        "parents": [{"sha": p, "url": f"https://api.github.com/commits/{p}"} for p in parents],
    }


class FakeCommitSource:
    """Stands in for GitHubRestClient and counts calls."""

    def __init__(self, refs: List[BranchRef], pages: Dict[str, List[RawCommit]],
                 refs_error: Optional[UpstreamError] = None,
                 commit_errors: Optional[Dict[str, UpstreamError]] = None):
        self.refs = refs
        self.pages = pages
        self.refs_error = refs_error
        self.commit_errors = commit_errors or {}
        self.ref_calls = 0
        self.commit_calls: List[tuple] = []
        self._lock = threading.Lock()

    def list_branch_heads(self, owner, repo):
        with self._lock:
            self.ref_calls += 1
        if self.refs_error is not None:
            raise self.refs_error
        return list(self.refs)

    def list_commits(self, owner, repo, branch, per_page):
        with self._lock:
            self.commit_calls.append((branch, per_page))
        if branch in self.commit_errors:
            raise self.commit_errors[branch]
        return list(self.pages.get(branch, []))[:per_page]


@pytest.fixture
def scenario_source():
    return FakeCommitSource(
        refs=[head("main"), head("dev")],
        pages={
            "main": [commit("a1", ["a0"]), commit("a0")],
            "dev": [commit("a1", ["a0"]), commit("d1", ["a1"])],
        },
    )
