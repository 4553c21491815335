"""Shared fixtures for the branch-tree tests."""

from __future__ import annotations

from branch_sources import Commit


def commit(name: str, author: str = "alice") -> Commit:
    """A commit whose id starts with a recognisable 8-char prefix."""
    return Commit(id=(name * 40)[:40], author=author, subject=name)


def short(name: str) -> str:
    return (name * 40)[:8]


class FakeLog:
    """``list_commits`` stand-in backed by a dict of ref -> commits."""

    def __init__(self, histories: dict[str, list[Commit]]):
        self.histories = histories
        self.calls: list[str] = []

    def __call__(self, ref: str) -> list[Commit]:
        self.calls.append(ref)
        return list(self.histories[ref])


class RecordingSink:
    """TreeSink that remembers the calls made on it as nested tuples."""

    def __init__(self, label: str = "."):
        self.label = label
        self.children: list[RecordingSink] = []

    def add_branch(self, label) -> "RecordingSink":
        child = RecordingSink(str(label))
        self.children.append(child)
        return child

    def add_meta_branch(self, meta, label) -> "RecordingSink":
        return self.add_branch(f"[{meta}] {label}")

    def serialize(self) -> str:
        return repr(self.shape())

    def shape(self):
        if not self.children:
            return self.label
        return (self.label, [child.shape() for child in self.children])
