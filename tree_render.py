"""
tree_render.py – turn a :class:`CommitGraph` into a box-drawing tree.

The renderer only talks to a :class:`TreeSink`; :class:`RichTreeSink` is the
concrete one, backed by :class:`rich.tree.Tree`.
"""

from __future__ import annotations

import io
from typing import Protocol

from rich.console import Console
from rich.text import Text
from rich.tree import Tree

from branch_graph import CommitGraph, CommitNode

JUNCTION = "┐"
HASH_WIDTH = 8
CURRENT_BRANCH_STYLE = "green"
ROOT_LABEL = "."
RENDER_WIDTH = 4096


class TreeSink(Protocol):
    def add_branch(self, label: str | Text) -> "TreeSink": ...

    def add_meta_branch(self, meta: str | Text, label: str | Text) -> "TreeSink": ...

    def serialize(self) -> str: ...


class RichTreeSink:
    """:class:`TreeSink` on top of a :class:`rich.tree.Tree` node."""

    def __init__(self, tree: Tree | None = None, *, color: bool = True):
        self.tree = tree if tree is not None else Tree(ROOT_LABEL)
        self.color = color

    def add_branch(self, label: str | Text) -> RichTreeSink:
        # Text, not markup: subjects may contain "[...]"
        if isinstance(label, str):
            label = Text(label)
        return RichTreeSink(self.tree.add(label), color=self.color)

    def add_meta_branch(self, meta: str | Text, label: str | Text) -> RichTreeSink:
        return self.add_branch(Text.assemble("[", meta, "]  ", label))

    def serialize(self, *, width: int = RENDER_WIDTH) -> str:
        buffer = io.StringIO()
        console = Console(
            file=buffer,
            width=width,
            color_system="standard" if self.color else None,
            force_terminal=self.color,
            highlight=False,
        )
        console.print(self.tree)
        return buffer.getvalue()


def node_label(node: CommitNode) -> str:
    if not node.id:
        return node.subject
    return f"{node.subject} ({node.author}, {node.id[:HASH_WIDTH]})"


def branch_meta(node: CommitNode) -> Text:
    """Comma-separated branch names, the checked-out one highlighted."""
    meta = Text()
    for i, branch in enumerate(node.branches):
        if i:
            meta.append(", ")
        meta.append(branch.name, style=CURRENT_BRANCH_STYLE if branch.current else None)
    return meta


def _add_node(sink: TreeSink, node: CommitNode) -> TreeSink:
    if node.branches:
        return sink.add_meta_branch(branch_meta(node), node_label(node))
    return sink.add_branch(node_label(node))


def render(graph: CommitGraph, sink: TreeSink) -> TreeSink:
    """
    Add the graph below *sink*, starting at ``graph.root``.

    Layout of a node's children:

    * the first child continues at the node's own level when the node carries
      no branch tags or sits on the main line;
    * the last child hangs directly under the node;
    * any other child hangs under a ``┐`` junction under the node.
    """
    rendered: set[str] = set()
    # pre-order with an explicit stack; same add order as the recursive walk
    stack: list[tuple[CommitNode, TreeSink]] = [(graph.root_node, sink)]
    while stack:
        node, parent = stack.pop()
        if node.key in rendered:
            continue
        rendered.add(node.key)
        branch = _add_node(parent, node)

        children = graph.children_of(node)
        last = len(children) - 1
        pending: list[tuple[CommitNode, TreeSink]] = []
        for i, child in enumerate(children):
            if i == 0 and (not node.branches or node.on_main):
                pending.append((child, parent))
            elif i == last:
                pending.append((child, branch))
            else:
                pending.append((child, branch.add_branch(JUNCTION)))
        stack.extend(reversed(pending))
    return sink


def render_text(graph: CommitGraph, *, color: bool = False, width: int = RENDER_WIDTH) -> str:
    sink = RichTreeSink(color=color)
    render(graph, sink)
    return sink.serialize(width=width)
