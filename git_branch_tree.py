#!/usr/bin/env -S uv run
# /// script
# dependencies = ["rich"]
# ///
"""
git_branch_tree.py – show local branches as a tree hanging off the main line.

Usage:
    git_branch_tree.py                 # run inside a repository
    git_branch_tree.py -C path/to/repo --no-color
"""

from __future__ import annotations

import argparse
import sys

from rich.console import Console
from rich.text import Text

from branch_graph import BuildError, build_graph
from branch_sources import (
    DEFAULT_MAX_COUNT,
    Commit,
    SourceError,
    list_branches,
    list_commits,
    main_branch_name,
)
from tree_render import RichTreeSink, render

console = Console()
err_console = Console(stderr=True)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="git-branch-tree",
        description="Print local branches as a tree diverging from the main branch.",
    )
    parser.add_argument(
        "-C",
        dest="repo",
        metavar="PATH",
        default=None,
        help="run as if started in PATH (like `git -C`)",
    )
    parser.add_argument(
        "-n",
        "--max-count",
        type=int,
        default=DEFAULT_MAX_COUNT,
        help=f"commits to read per branch (default: {DEFAULT_MAX_COUNT})",
    )
    parser.add_argument(
        "--main", metavar="NAME", help="main branch name (default: resolved from git)"
    )
    parser.add_argument("--no-color", action="store_true", help="plain output")
    parser.add_argument(
        "--debug", action="store_true", help="dump the graph outline to stderr"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="progress messages on stderr"
    )
    args = parser.parse_args(argv)
    if args.max_count < 1:
        parser.error("--max-count must be at least 1")
    return args


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    def note(message: str) -> None:
        if args.verbose:
            err_console.print(Text(message, style="dim"))

    def fetch(ref: str) -> list[Commit]:
        commits = list_commits(ref, max_count=args.max_count, cwd=args.repo)
        note(f"{ref}: {len(commits)} commit(s)")
        return commits

    try:
        main_name = args.main or main_branch_name(cwd=args.repo)
        branches = list_branches(cwd=args.repo)
        note(f"main branch {main_name!r}, {len(branches)} local branch(es)")
        graph = build_graph(branches, main_name, fetch)
    except (SourceError, BuildError) as exc:
        err_console.print(Text.assemble(("error: ", "bold red"), str(exc)))
        sys.exit(1)

    reachable = graph.reachable()
    kept = sum(1 for node in reachable if node.on_main and not node.elided)
    elided = sum(1 for node in reachable if node.elided)
    note(f"main line: {kept} kept, {elided} elided run(s)")

    color = console.is_terminal and not args.no_color
    sink = render(graph, RichTreeSink(color=color))
    if console.is_terminal:
        out = Console(no_color=True) if args.no_color else console
        out.print(sink.tree, highlight=False)
    else:
        # piped: no wrapping at the default 80 columns
        sys.stdout.write(sink.serialize())

    if args.debug:
        err_console.print(graph.outline(), markup=False, highlight=False)


if __name__ == "__main__":
    main()
