"""
branch_graph.py – stitch per-branch commit listings into one rooted graph.

Histories are walked newest → oldest.  A node's *children* are the commits
visited just before it in such a walk, i.e. its newer continuation, so the
root of the finished graph is the oldest main-line commit that still matters.

Nodes live in a :class:`CommitGraph` arena keyed by commit id; ``children``
hold keys, never node copies, so every id maps to exactly one node.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Sequence

from branch_sources import Branch, Commit

ELISION_MARKER = "..."

ListCommits = Callable[[str], Sequence[Commit]]


class BuildError(RuntimeError):
    """The branch graph could not be built."""


class EmptyHistoryError(BuildError):
    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"no commits found on main branch {ref!r}")


@dataclass
class CommitNode:
    key: str
    commit: Commit
    on_main: bool = False
    elided: bool = False
    branches: list[Branch] = field(default_factory=list)
    children: list[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return "" if self.elided else self.commit.id

    @property
    def subject(self) -> str:
        return ELISION_MARKER if self.elided else self.commit.subject

    @property
    def author(self) -> str:
        return "" if self.elided else self.commit.author

    def elide(self) -> None:
        """Turn this node into a placeholder for a run of main-line commits."""
        self.elided = True
        self.on_main = True


class CommitGraph:
    """Arena of :class:`CommitNode` objects, one per commit id."""

    def __init__(self) -> None:
        self._nodes: dict[str, CommitNode] = {}
        self.root: str | None = None

    def intern(self, commit: Commit) -> tuple[CommitNode, bool]:
        """Return ``(node, created)`` for *commit*, creating it on first sight."""
        node = self._nodes.get(commit.id)
        if node is not None:
            return node, False
        node = CommitNode(key=commit.id, commit=commit)
        self._nodes[commit.id] = node
        return node, True

    def node(self, key: str) -> CommitNode:
        return self._nodes[key]

    def __contains__(self, key: object) -> bool:
        return key in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[CommitNode]:
        return iter(self._nodes.values())

    @property
    def root_node(self) -> CommitNode:
        if self.root is None:
            raise BuildError("graph has no root yet")
        return self._nodes[self.root]

    def children_of(self, node: CommitNode) -> list[CommitNode]:
        return [self._nodes[key] for key in node.children]

    def reachable(self) -> list[CommitNode]:
        """Nodes reachable from the root, depth-first, once each."""
        seen: set[str] = set()
        order: list[CommitNode] = []
        stack = [self.root_node]
        while stack:
            node = stack.pop()
            if node.key in seen:
                continue
            seen.add(node.key)
            order.append(node)
            stack.extend(reversed(self.children_of(node)))
        return order

    def outline(self) -> str:
        """Parenthesised dump of subjects, one per line; handy for debugging."""
        start = self.root_node.key
        lines: list[str] = []
        seen: set[str] = set()
        # (key, depth, closing) entries; closing entries emit ")"
        stack: list[tuple[str, int, bool]] = [(start, 0, False)]
        while stack:
            current, depth, closing = stack.pop()
            indent = "  " * depth
            if closing:
                lines.append(f"{indent})")
                continue
            node = self._nodes[current]
            if current in seen or not node.children:
                lines.append(f"{indent}{node.subject}")
                continue
            seen.add(current)
            lines.append(f"{indent}{node.subject}(")
            stack.append((current, depth, True))
            for child in reversed(node.children):
                stack.append((child, depth + 1, False))
        return "\n".join(lines)


# ── builder ──────────────────────────────────────────────────────────────
def scan_branches(
    graph: CommitGraph,
    branches: Iterable[Branch],
    list_commits: ListCommits,
    main_ids: set[str] | frozenset[str],
) -> list[str]:
    """
    Walk every branch newest → oldest and link its commits into *graph*.

    A branch scan stops right after a commit whose node already existed
    (shared history is captured once), or else right after a commit that is
    on the main line.  The existing-node check runs first.

    Returns the main-line ids the branches attach to, in discovery order.
    """
    needed: dict[str, None] = {}
    for branch in branches:
        last: CommitNode | None = None
        for i, commit in enumerate(list_commits(branch.name)):
            node, created = graph.intern(commit)
            if i == 0:
                node.branches.append(branch)
            if last is not None:
                node.children.append(last.key)
            last = node

            if not created:
                break
            if commit.id in main_ids:
                needed[commit.id] = None
                break
    return list(needed)


def collapse_main_line(
    graph: CommitGraph,
    main_commits: Sequence[Commit],
    needed_from_main: Iterable[str],
    main_branch: Branch,
) -> CommitNode:
    """
    Link the main line into *graph*, eliding runs nobody branched from.

    Kept verbatim: the newest commit and every id in *needed_from_main*.
    Each maximal run of other commits becomes one ``...`` placeholder.  The
    walk stops once every needed id has been seen; the last node processed
    becomes ``graph.root`` and is returned.
    """
    if not main_commits:
        raise EmptyHistoryError(main_branch.name)

    pending = dict.fromkeys(needed_from_main)
    last: CommitNode | None = None
    node: CommitNode | None = None
    for i, commit in enumerate(main_commits):
        node, _ = graph.intern(commit)
        node.on_main = True
        if i == 0:
            node.branches.append(main_branch)
        if last is not None and last.key not in node.children:
            node.children.insert(0, last.key)

        if i == 0 or commit.id in pending:
            last = node
        elif not last.elided:
            node.elide()
            last = node

        pending.pop(commit.id, None)
        if not pending:
            break

    graph.root = node.key
    return node


def build_graph(
    branches: Sequence[Branch],
    main_branch_name: str,
    list_commits: ListCommits,
) -> CommitGraph:
    """
    Build the rooted branch graph.

    *list_commits* is called once for the main line and once per other
    branch, in the order given; its errors propagate unchanged.
    """
    main_commits = list_commits(main_branch_name)
    if not main_commits:
        raise EmptyHistoryError(main_branch_name)
    main_ids = frozenset(commit.id for commit in main_commits)

    main_branch = Branch(main_branch_name, False)
    others: list[Branch] = []
    for branch in branches:
        if branch.name == main_branch_name:
            main_branch = branch
        else:
            others.append(branch)

    graph = CommitGraph()
    needed = scan_branches(graph, others, list_commits, main_ids)
    collapse_main_line(graph, main_commits, needed, main_branch)
    return graph
