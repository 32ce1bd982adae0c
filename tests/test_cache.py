from __future__ import annotations

import asyncio
import shutil
import tempfile
import unittest
from collections import Counter
from pathlib import Path
from unittest import mock

from lazyrepos.cache import (
    ReconciliationCache,
    decode_repositories,
    encode_repositories,
    load_cache,
    plan_probes,
    save_cache,
)
from lazyrepos.errors import FilesystemError, ParseFailure
from lazyrepos.repository import Repository, RepoStatus
from lazyrepos.status import StatusClassifier


class NullClassifier(StatusClassifier):
    async def classify(self, path: Path) -> RepoStatus:
        return RepoStatus.Clean


class FakeProbe:
    """Stands in for ``probe_repository`` with canned outcomes per path."""

    def __init__(self, outcomes: dict[Path, object]) -> None:
        self.outcomes = outcomes
        self.calls: list[Path] = []

    async def __call__(self, path: Path, _classifier: StatusClassifier) -> Repository:
        self.calls.append(path)
        outcome = self.outcomes[path]
        if isinstance(outcome, Exception):
            raise outcome
        status, last_commit_time = outcome
        return Repository.for_path(path, status, last_commit_time)


class CacheFileTests(unittest.TestCase):
    def test_save_then_load_reproduces_list(self) -> None:
        repos = [
            Repository.for_path(Path("/work/b"), RepoStatus.NeedPull, 200),
            Repository.for_path(Path("/work/a"), RepoStatus.Timeout, 0),
            Repository(name="renamed", path=Path("/work/c"), status=RepoStatus.NeedCommit, last_commit_time=5),
        ]
        with tempfile.TemporaryDirectory() as tmp:
            cache_path = Path(tmp) / "nested" / "repo.json"
            save_cache(repos, cache_path)

            self.assertEqual(load_cache(cache_path), repos)
            self.assertFalse(cache_path.with_name("repo.json.tmp").exists())

    def test_records_use_named_status_variants(self) -> None:
        text = encode_repositories([Repository.for_path(Path("/work/a"), RepoStatus.NeedPush, 7)])

        self.assertIn('"status": "NeedPush"', text)
        self.assertIn('"last_commit_time": 7', text)
        self.assertIn('"name": "a"', text)

    def test_missing_file_means_no_cache(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self.assertIsNone(load_cache(Path(tmp) / "repo.json"))

    def test_malformed_cache_is_treated_as_absent(self) -> None:
        bad_payloads = [
            "{not json",
            '{"name": "a"}',
            '[{"name": "a", "path": "/a", "status": "Dirty", "last_commit_time": 1}]',
            '[{"name": "a", "path": "/a", "status": "Clean", "last_commit_time": "1"}]',
            '[{"name": "a", "status": "Clean", "last_commit_time": 1}]',
        ]
        with tempfile.TemporaryDirectory() as tmp:
            cache_path = Path(tmp) / "repo.json"
            for payload in bad_payloads:
                with self.subTest(payload=payload):
                    cache_path.write_text(payload, encoding="utf-8")
                    self.assertIsNone(load_cache(cache_path))

    def test_decode_raises_parse_failure(self) -> None:
        with self.assertRaises(ParseFailure):
            decode_repositories("[1, 2]")

    def test_save_failure_raises_filesystem_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "file"
            blocker.write_text("x", encoding="utf-8")
            with self.assertRaises(FilesystemError):
                save_cache([], blocker / "repo.json")


class PlanProbesTests(unittest.TestCase):
    def test_known_paths_then_new_paths_each_once(self) -> None:
        a, b, c = Path("/r/a"), Path("/r/b"), Path("/r/c")
        previous = [
            Repository.for_path(a, RepoStatus.Clean),
            Repository.for_path(b, RepoStatus.Timeout),
            Repository.for_path(a, RepoStatus.Clean),
        ]

        self.assertEqual(plan_probes(previous, [c, a]), [a, b, c])
        self.assertEqual(plan_probes(None, [c, a, c]), [c, a])


class ReconcileTests(unittest.TestCase):
    def setUp(self) -> None:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.base = Path(tmp.name).resolve()
        self.root = self.base / "root"
        self.cache_path = self.base / "cache" / "repo.json"
        for name in ("a", "b", "c"):
            (self.root / name).mkdir(parents=True)
        self.a, self.b, self.c = (self.root / name for name in ("a", "b", "c"))
        self.discovered: list[Path] = []

    def reconcile(self, previous, probe: FakeProbe):
        cache = ReconciliationCache(
            NullClassifier(),
            cache_path=self.cache_path,
            discover_paths=lambda _root, _ignore: list(self.discovered),
        )
        with mock.patch("lazyrepos.cache.probe_repository", probe):
            return asyncio.run(cache.reconcile(self.root, previous))

    def test_full_discovery_without_previous_cache(self) -> None:
        self.discovered = [self.a, self.b, self.c]
        probe = FakeProbe(
            {
                self.a: (RepoStatus.Clean, 10),
                self.b: FilesystemError("gone"),
                self.c: (RepoStatus.NeedPush, 30),
            }
        )

        repos, error_count = self.reconcile(None, probe)

        self.assertEqual([repo.path for repo in repos], [self.c, self.a])
        self.assertEqual(error_count, 1)
        self.assertEqual(load_cache(self.cache_path), repos)

    def test_previous_cache_merges_with_new_discoveries(self) -> None:
        shutil.rmtree(self.b)
        previous = [
            Repository.for_path(self.a, RepoStatus.Clean, 10),
            Repository.for_path(self.b, RepoStatus.NeedPull, 20),
        ]
        self.discovered = [self.a, self.c]
        probe = FakeProbe(
            {
                self.a: (RepoStatus.NeedCommit, 40),
                self.c: (RepoStatus.Clean, 5),
            }
        )

        repos, error_count = self.reconcile(previous, probe)

        self.assertEqual(
            [(repo.path, repo.status) for repo in repos],
            [(self.a, RepoStatus.NeedCommit), (self.c, RepoStatus.Clean)],
        )
        self.assertEqual(error_count, 0)
        self.assertNotIn(self.b, probe.calls)

    def test_every_path_probed_once_including_timeouts(self) -> None:
        previous = [
            Repository.for_path(self.a, RepoStatus.Timeout, 10),
            Repository.for_path(self.b, RepoStatus.Clean, 20),
        ]
        self.discovered = [self.b, self.c, self.a]
        probe = FakeProbe(
            {
                self.a: (RepoStatus.Clean, 10),
                self.b: (RepoStatus.Clean, 20),
                self.c: (RepoStatus.Clean, 30),
            }
        )

        repos, _error_count = self.reconcile(previous, probe)

        self.assertEqual(Counter(probe.calls), Counter({self.a: 1, self.b: 1, self.c: 1}))
        self.assertEqual(next(repo for repo in repos if repo.path == self.a).status, RepoStatus.Clean)

    def test_result_is_sorted_newest_commit_first(self) -> None:
        self.discovered = [self.a, self.b, self.c]
        probe = FakeProbe(
            {
                self.a: (RepoStatus.Clean, 5),
                self.b: (RepoStatus.Clean, 50),
                self.c: (RepoStatus.Clean, 5),
            }
        )

        repos, _error_count = self.reconcile(None, probe)
        times = [repo.last_commit_time for repo in repos]

        self.assertEqual(times, sorted(times, reverse=True))
        self.assertEqual(repos[0].path, self.b)

    def test_reconcile_is_idempotent(self) -> None:
        self.discovered = [self.a, self.c]
        outcomes = {self.a: (RepoStatus.NeedPull, 1), self.c: (RepoStatus.Clean, 2)}

        first, _ = self.reconcile(None, FakeProbe(outcomes))
        second, _ = self.reconcile(load_cache(self.cache_path), FakeProbe(outcomes))

        self.assertEqual(first, second)

    def test_empty_result_is_still_persisted(self) -> None:
        save_cache([Repository.for_path(self.a, RepoStatus.Clean, 1)], self.cache_path)
        self.discovered = []
        probe = FakeProbe({self.a: FilesystemError("broken")})

        repos, error_count = self.reconcile(load_cache(self.cache_path), probe)

        self.assertEqual(repos, [])
        self.assertEqual(error_count, 1)
        self.assertEqual(load_cache(self.cache_path), [])

    def test_discovery_failure_propagates(self) -> None:
        cache = ReconciliationCache(
            NullClassifier(),
            cache_path=self.cache_path,
            discover_paths=mock.Mock(side_effect=FilesystemError("no root")),
        )

        with self.assertRaises(FilesystemError):
            asyncio.run(cache.reconcile(self.root, None))

    def test_refresh_reads_previous_cycle_from_disk(self) -> None:
        save_cache([Repository.for_path(self.a, RepoStatus.Timeout, 1)], self.cache_path)
        cache = ReconciliationCache(
            NullClassifier(),
            cache_path=self.cache_path,
            discover_paths=lambda _root, _ignore: [],
        )
        probe = FakeProbe({self.a: (RepoStatus.Clean, 3)})

        with mock.patch("lazyrepos.cache.probe_repository", probe):
            repos, error_count = asyncio.run(cache.refresh(self.root))

        self.assertEqual(repos, [Repository.for_path(self.a, RepoStatus.Clean, 3)])
        self.assertEqual(error_count, 0)


if __name__ == "__main__":
    unittest.main()
