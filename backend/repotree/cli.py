import argparse
import json
import logging
import sys
from typing import Any, Dict, Optional

from .config import get_settings
from .errors import UpstreamError
from .github_client import GitHubRestClient
from .graph import DEFAULT_COMMITS_PER_BRANCH
from .stats_service import StatsService, gh_client
from .tree_service import TreeService

logger = logging.getLogger(__name__)


def analyze_repo(full_name: str, limit: int = DEFAULT_COMMITS_PER_BRANCH, with_stats: bool = False) -> Dict[str, Any]:
    try:
        owner, name = full_name.split('/', 1)
    except ValueError:
        raise SystemExit("Repo must be in the form 'owner/name'")

    settings = get_settings()
    with GitHubRestClient(settings) as client:
        tree = TreeService.from_settings(client, settings).get_repo_tree(owner, name, limit)

    summary: Dict[str, Any] = {"tree": tree.model_dump()}
    if with_stats:
        summary["stats"] = StatsService(gh_client(settings)).get_repo_stats(owner, name).model_dump()
    return summary


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Print the commit graph of a GitHub repository as JSON")
    parser.add_argument("repo", help="GitHub repository full name, e.g. owner/name")
    parser.add_argument("--limit", type=int, default=DEFAULT_COMMITS_PER_BRANCH, help="Commits per branch (1-200)")
    parser.add_argument("--stats", action="store_true", help="Include stars, forks, issues, contributors and open PRs")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    limit = max(1, min(200, args.limit))
    try:
        data = analyze_repo(args.repo, limit=limit, with_stats=args.stats)
    except UpstreamError as e:
        logger.error("Failed to analyze %s: %s", args.repo, e)
        return 1

    if args.pretty:
        print(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        print(json.dumps(data, separators=(",",":"), ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
