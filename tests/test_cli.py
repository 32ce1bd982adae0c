from __future__ import annotations

import io
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from lazyrepos import cli, config
from lazyrepos.cache import load_cache
from lazyrepos.repository import Repository, RepoStatus


async def _fake_probe(path: Path, _classifier) -> Repository:
    status = RepoStatus.NeedPush if path.name == "alpha" else RepoStatus.Clean
    return Repository.for_path(path, status, len(path.name))


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.base = Path(tmp.name).resolve()
        self.root = self.base / "src"
        for name in ("alpha", "beta"):
            (self.root / name / ".git").mkdir(parents=True)
        self.cache_path = self.base / "cache.json"

        for patcher in (
            mock.patch("lazyrepos.cli.setup_logging"),
            mock.patch("lazyrepos.config.CONFIG_PATH", self.base / "config.json"),
            mock.patch("lazyrepos.discovery._find_fd", return_value=None),
            mock.patch("lazyrepos.cache.probe_repository", _fake_probe),
        ):
            patcher.start()
            self.addCleanup(patcher.stop)

    def run_cli(self, *argv: str) -> tuple[int, str, str]:
        stdout = io.StringIO()
        stderr = io.StringIO()
        with mock.patch("sys.stdout", stdout), mock.patch("sys.stderr", stderr):
            code = cli.main([str(self.root), "--cache", str(self.cache_path), *argv])
        return code, stdout.getvalue(), stderr.getvalue()

    def test_lists_repositories_and_writes_cache(self) -> None:
        code, out, err = self.run_cli()

        self.assertEqual(code, 0)
        lines = out.splitlines()
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].startswith("alpha"))
        self.assertIn("need push", lines[0])
        self.assertIn(str(self.root / "beta"), lines[1])
        self.assertNotIn("\033[", out)
        self.assertIn("repo: 2/2", err)
        self.assertEqual({repo.name for repo in load_cache(self.cache_path)}, {"alpha", "beta"})

    def test_filter_query_limits_output(self) -> None:
        _code, out, err = self.run_cli("--filter", "+Clean")

        self.assertEqual([line.split()[0] for line in out.splitlines()], ["beta"])
        self.assertIn("repo: 1/2", err)

    def test_missing_root_exits(self) -> None:
        with self.assertRaises(SystemExit):
            cli.main([str(self.base / "missing")])

    def test_save_root_persists_search_root(self) -> None:
        self.run_cli("--save-root")

        self.assertEqual(config.load_search_root(), self.root)

    def test_repository_line_colors_status(self) -> None:
        repo = Repository.for_path(Path("/w/api"), RepoStatus.NeedCommit, 1)

        self.assertIn("\033[38;5;203m", cli.format_repository_line(repo, colorize=True))
        self.assertNotIn("\033[", cli.format_repository_line(repo, colorize=False))


if __name__ == "__main__":
    unittest.main()
