"""Branch selection and commit-graph construction.

Both functions are pure: the same refs and commit pages always give the same
branches, nodes and edges, in the same order.
"""

from typing import Dict, Iterable, List, Mapping, Sequence, Set

from .models import BranchRef, CommitEdge, CommitNode, RawCommit, RepoTree

MAX_BRANCHES = 5
DEFAULT_COMMITS_PER_BRANCH = 50
SHORT_SHA_LEN = 7


def select_branches(refs: Iterable[BranchRef], max_branches: int = MAX_BRANCHES) -> List[str]:
    """Return bare branch names for the first `max_branches` branch heads.

    Tags and other ref kinds are dropped; upstream order is kept. Each selected
    branch costs one commit-listing call, so this bounds upstream traffic.
    """
    names = [r.name for r in refs if r.is_branch]
    return names[:max_branches]


def _node_for(commit: RawCommit, branch: str) -> CommitNode:
    return CommitNode(
        id=commit.sha,
        label=commit.sha[:SHORT_SHA_LEN],
        branch=branch,
        message=commit.message,
        author=commit.author_name or commit.author_login or "unknown",
        date=commit.author_date or "",
    )


def build_graph(
    branches: Sequence[str],
    commits_by_branch: Mapping[str, Sequence[RawCommit]],
) -> RepoTree:
    """Fold per-branch commit pages into one graph.

    Nodes are first-seen-wins: a commit reachable from several branches keeps
    the branch it was found on first. Parent edges are added for every commit
    visited, seen or not, so a commit listed again under a later branch may
    contribute the same edge twice.
    """
    nodes: List[CommitNode] = []
    edges: List[CommitEdge] = []
    seen: Set[str] = set()

    for branch in branches:
        for c in commits_by_branch.get(branch, ()):
            if c.sha not in seen:
                seen.add(c.sha)
                nodes.append(_node_for(c, branch))
            for parent in c.parents:
                edges.append(CommitEdge(id=f"{c.sha}-{parent}", source=c.sha, target=parent))

    return RepoTree(branches=list(branches), nodes=nodes, edges=edges)


def edge_counts(tree: RepoTree) -> Dict[str, int]:
    """Number of times each edge id occurs; values above 1 are repeat observations."""
    counts: Dict[str, int] = {}
    for e in tree.edges:
        counts[e.id] = counts.get(e.id, 0) + 1
    return counts
