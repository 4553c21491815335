"""
End-to-end tests for the command-line entry point (git calls mocked)
"""

import io
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

import git_branch_tree
from branch_sources import Branch, SourceError
from tests.helpers import commit, short

C1, C2, C3 = commit("c1"), commit("c2"), commit("c3")

HISTORIES = {
    "main": [C2, C1],
    "topic": [C3, C1],
}


def fake_list_commits(ref, *, max_count, cwd):
    return HISTORIES[ref][:max_count]


class TestMain(unittest.TestCase):
    def _run(self, *argv, branches=None, main_name="main"):
        out, err = io.StringIO(), io.StringIO()
        branches = branches or [Branch("main"), Branch("topic", current=True)]
        with patch.object(git_branch_tree, "main_branch_name", return_value=main_name), \
                patch.object(git_branch_tree, "list_branches", return_value=branches), \
                patch.object(git_branch_tree, "list_commits", side_effect=fake_list_commits) as lc, \
                redirect_stdout(out), redirect_stderr(err):
            git_branch_tree.main(list(argv))
        self.list_commits = lc
        return out.getvalue(), err.getvalue()

    def test_prints_tree(self):
        out, err = self._run()
        lines = [line.rstrip() for line in out.splitlines()]
        self.assertEqual(
            lines,
            [
                ".",
                f"├── c1 (alice, {short('c1')})",
                f"│   └── [topic]  c3 (alice, {short('c3')})",
                f"└── [main]  c2 (alice, {short('c2')})",
            ],
        )
        self.assertEqual(err, "")

    def test_options_reach_the_sources(self):
        self._run("-C", "/src/repo", "-n", "7")
        for call in self.list_commits.call_args_list:
            self.assertEqual(call.kwargs, {"max_count": 7, "cwd": "/src/repo"})

    def test_main_override_skips_resolution(self):
        with patch.object(git_branch_tree, "main_branch_name") as resolve:
            resolve.side_effect = AssertionError("should not resolve")
            out, _ = self._run_with_resolver("--main", "main")
        self.assertIn("[main]", out)

    def _run_with_resolver(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        branches = [Branch("main"), Branch("topic")]
        with patch.object(git_branch_tree, "list_branches", return_value=branches), \
                patch.object(git_branch_tree, "list_commits", side_effect=fake_list_commits), \
                redirect_stdout(out), redirect_stderr(err):
            git_branch_tree.main(list(argv))
        return out.getvalue(), err.getvalue()

    def test_verbose_and_debug_go_to_stderr(self):
        out, err = self._run("-v", "--debug")
        self.assertIn("main branch 'main'", err)
        self.assertIn("topic: 2 commit(s)", err)
        self.assertIn("c1(", err)
        self.assertNotIn("commit(s)", out)

    def test_source_error_exits_nonzero(self):
        err = io.StringIO()
        out = io.StringIO()
        boom = SourceError("'git branch' failed (128): fatal: not a git repository")
        with patch.object(git_branch_tree, "main_branch_name", side_effect=boom), \
                redirect_stdout(out), redirect_stderr(err):
            with self.assertRaises(SystemExit) as ctx:
                git_branch_tree.main([])
        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("not a git repository", err.getvalue())
        self.assertEqual(out.getvalue(), "")

    def test_empty_history_exits_nonzero(self):
        err = io.StringIO()
        with patch.object(git_branch_tree, "main_branch_name", return_value="main"), \
                patch.object(git_branch_tree, "list_branches", return_value=[]), \
                patch.object(git_branch_tree, "list_commits", return_value=[]), \
                redirect_stdout(io.StringIO()), redirect_stderr(err):
            with self.assertRaises(SystemExit) as ctx:
                git_branch_tree.main([])
        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("no commits found", err.getvalue())

    def test_rejects_bad_window(self):
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as ctx:
            git_branch_tree.main(["-n", "0"])
        self.assertEqual(ctx.exception.code, 2)


if __name__ == "__main__":
    unittest.main()
