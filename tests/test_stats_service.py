from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
import requests
from github.GithubException import GithubException, RateLimitExceededException, UnknownObjectException

from repotree.config import Settings
from repotree.errors import NotFoundError, RateLimitedError, UpstreamError
from repotree.stats_service import StatsService, gh_client


class Listing:
    """Enough of a PyGithub PaginatedList: totalCount and slicing."""

    def __init__(self, items=(), error=None):
        self.items = list(items)
        self.error = error

    @property
    def totalCount(self):
        if self.error is not None:
            raise self.error
        return len(self.items)

    def __getitem__(self, index):
        if self.error is not None:
            raise self.error
        return self.items[index]


def people(n):
    return [
        SimpleNamespace(login=f"dev{i}", contributions=100 - i,
                        avatar_url=f"https://avatars/dev{i}", html_url=f"https://github.com/dev{i}")
        for i in range(n)
    ]


class FakeRepo:
    id = 1296269
    name = "hello"
    full_name = "octo/hello"
    description = "Hello"
    html_url = "https://github.com/octo/hello"
    language = "Python"
    default_branch = "main"
    stargazers_count = 120
    forks_count = 8
    open_issues_count = 3
    updated_at = datetime(2024, 5, 1, tzinfo=timezone.utc)
    pushed_at = None

    def __init__(self, contributors=None, pulls=None):
        self._contributors = contributors or Listing(people(4))
        self._pulls = pulls or Listing(range(2))
        self.pull_states = []

    def get_contributors(self):
        return self._contributors

    def get_pulls(self, state="open"):
        self.pull_states.append(state)
        return self._pulls


class FakeGithub:
    def __init__(self, repo=None, error=None):
        self.repo = repo
        self.error = error
        self.requested = []

    def get_repo(self, full_name):
        self.requested.append(full_name)
        if self.error is not None:
            raise self.error
        return self.repo


class TestRepoStats:
    def test_collects_stats(self):
        repo = FakeRepo()
        gh = FakeGithub(repo)

        stats = StatsService(gh).get_repo_stats("octo", "hello")

        assert gh.requested == ["octo/hello"]
        assert repo.pull_states == ["open"]
        assert stats.stars == 120
        assert stats.forks == 8
        assert stats.open_issues == 3
        assert stats.contributors == 4
        assert stats.open_pull_requests == 2
        assert stats.updated_at == "2024-05-01T00:00:00+00:00"

    def test_contributor_refusal_counts_as_zero(self):
        too_large = GithubException(403, {"message": "The history or contributor list is too large"}, None)
        stats = StatsService(FakeGithub(FakeRepo(contributors=Listing(error=too_large)))).get_repo_stats("o", "r")
        assert stats.contributors == 0
        assert stats.open_pull_requests == 2

    @pytest.mark.parametrize("error,is_timeout", [
        (requests.exceptions.ReadTimeout("read timed out"), True),
        (requests.exceptions.ConnectionError("connection refused"), False),
    ])
    def test_network_failure_while_counting_is_upstream_error(self, error, is_timeout):
        repo = FakeRepo(pulls=Listing(error=error))
        with pytest.raises(UpstreamError) as exc:
            StatsService(FakeGithub(repo)).get_repo_stats("o", "r")
        assert exc.value.timeout is is_timeout


class TestRepoLookupErrors:
    @pytest.mark.parametrize("error,expected", [
        (UnknownObjectException(404, {"message": "Not Found"}, None), NotFoundError),
        (RateLimitExceededException(403, {"message": "API rate limit exceeded"}, None), RateLimitedError),
        (GithubException(403, {"message": "API rate limit exceeded"}, {"X-RateLimit-Remaining": "0"}), RateLimitedError),
        (GithubException(429, {"message": "Too many requests"}, None), RateLimitedError),
        (GithubException(500, {"message": "Server Error"}, None), UpstreamError),
    ])
    def test_github_errors_are_translated(self, error, expected):
        with pytest.raises(expected):
            StatsService(FakeGithub(error=error)).get_repo_stats("o", "r")

    def test_forbidden_with_quota_left_is_not_rate_limited(self):
        forbidden = GithubException(403, {"message": "Resource not accessible"}, {"X-RateLimit-Remaining": "4000"})
        with pytest.raises(UpstreamError) as exc:
            StatsService(FakeGithub(error=forbidden)).get_repo_stats("o", "r")
        assert not isinstance(exc.value, RateLimitedError)
        assert exc.value.status_code == 403

    def test_timeout_is_flagged(self):
        gh = FakeGithub(error=requests.exceptions.ReadTimeout("read timed out"))
        with pytest.raises(UpstreamError) as exc:
            StatsService(gh).get_repo_stats("o", "r")
        assert exc.value.timeout

    def test_connection_error_is_upstream_error(self):
        gh = FakeGithub(error=requests.exceptions.ConnectionError("connection refused"))
        with pytest.raises(UpstreamError) as exc:
            StatsService(gh).get_repo_info("o", "r")
        assert not exc.value.timeout


class TestRepoInfo:
    def test_repository_fields(self):
        info = StatsService(FakeGithub(FakeRepo())).get_repo_info("octo", "hello")
        assert info.id == 1296269
        assert info.full_name == "octo/hello"
        assert info.default_branch == "main"
        assert info.stars == 120
        assert info.updated_at == "2024-05-01T00:00:00+00:00"
        assert info.pushed_at is None

    def test_missing_repository(self):
        with pytest.raises(NotFoundError):
            StatsService(FakeGithub(error=UnknownObjectException(404, {}, None))).get_repo_info("o", "r")


class TestContributors:
    def test_lists_top_contributors(self):
        repo = FakeRepo(contributors=Listing(people(5)))
        out = StatsService(FakeGithub(repo)).get_contributors("octo", "hello", limit=3)
        assert [c.login for c in out] == ["dev0", "dev1", "dev2"]
        assert out[0].contributions == 100
        assert out[0].profile_url == "https://github.com/dev0"

    def test_limit_is_bounded(self):
        repo = FakeRepo(contributors=Listing(people(120)))
        service = StatsService(FakeGithub(repo))
        assert len(service.get_contributors("o", "r", limit=500)) == 100
        assert len(service.get_contributors("o", "r", limit=0)) == 1

    def test_refused_listing_is_empty(self):
        too_large = GithubException(403, {"message": "The history or contributor list is too large"}, None)
        repo = FakeRepo(contributors=Listing(error=too_large))
        assert StatsService(FakeGithub(repo)).get_contributors("o", "r") == []

    def test_network_failure_is_upstream_error(self):
        repo = FakeRepo(contributors=Listing(error=requests.exceptions.ReadTimeout("slow")))
        with pytest.raises(UpstreamError) as exc:
            StatsService(FakeGithub(repo)).get_contributors("o", "r")
        assert exc.value.timeout


def test_gh_client_builds_with_and_without_token():
    assert gh_client(Settings()) is not None
    assert gh_client(Settings(github_token="t0ken")) is not None
