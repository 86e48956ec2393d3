from typing import List, Optional

from pydantic import BaseModel, ConfigDict

HEADS_PREFIX = "refs/heads/"


class BranchRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    ref: str  # refs/heads/main
    sha: str

    @property
    def is_branch(self) -> bool:
        return self.ref.startswith(HEADS_PREFIX)

    @property
    def name(self) -> str:
        if self.is_branch:
            return self.ref[len(HEADS_PREFIX):]
        return self.ref

    @classmethod
    def from_api(cls, item: dict) -> "BranchRef":
        obj = item.get("object") or {}
        return cls(ref=item.get("ref", ""), sha=obj.get("sha", ""))


class RawCommit(BaseModel):
    """A commit as listed by the GitHub commits endpoint."""

    model_config = ConfigDict(frozen=True)

    sha: str
    message: str = ""
    author_name: Optional[str] = None
    author_date: Optional[str] = None
    author_login: Optional[str] = None  # linked GitHub account, may be absent
    parents: List[str] = []

    @classmethod
    def from_api(cls, item: dict) -> "RawCommit":
        commit = item.get("commit") or {}
        git_author = commit.get("author") or {}
        gh_author = item.get("author") or {}
        return cls(
            sha=item["sha"],
            message=commit.get("message") or "",
            author_name=git_author.get("name"),
            author_date=git_author.get("date"),
            author_login=gh_author.get("login"),
            parents=[p["sha"] for p in (item.get("parents") or []) if p.get("sha")],
        )


class CommitNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # commit sha
    label: str  # short sha
    branch: str  # branch the commit was first discovered on
    message: str
    author: str
    date: str


class CommitEdge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # "{source}-{target}"
    source: str
    target: str


class RepoTree(BaseModel):
    """Built once per cache miss and shared by every reader until replaced."""

    model_config = ConfigDict(frozen=True)

    branches: List[str] = []
    nodes: List[CommitNode] = []
    edges: List[CommitEdge] = []  # one per observed parent link, duplicates kept


class RepoStats(BaseModel):
    full_name: str
    description: Optional[str] = None
    html_url: Optional[str] = None
    language: Optional[str] = None
    stars: int
    forks: int
    open_issues: int
    contributors: int
    open_pull_requests: int
    updated_at: Optional[str] = None


class RateLimitStatus(BaseModel):
    limit: int
    remaining: int
    reset: int
    used: int = 0


class RepoInfo(BaseModel):
    id: int
    name: str
    full_name: str
    description: Optional[str] = None
    html_url: Optional[str] = None
    language: Optional[str] = None
    default_branch: Optional[str] = None
    stars: int
    forks: int
    open_issues: int
    updated_at: Optional[str] = None
    pushed_at: Optional[str] = None


class Contributor(BaseModel):
    login: str
    contributions: int
    avatar_url: Optional[str] = None
    profile_url: Optional[str] = None
