"""Tests for autogazelle.repos.importer."""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

import httpx
import pytest

from autogazelle.repos.importer import (
    import_repos_from_dep,
    is_private,
    private_rule,
    resolve_projects,
)
from autogazelle.repos.manifest import DepProject, ManifestError
from autogazelle.repos.proxy import ResolutionError

if TYPE_CHECKING:
    from pathlib import Path

PROXY = "https://proxy.example.com"


def _no_sleep(_seconds: float) -> None:
    pass


class SlowProxy:
    """Answers every module, slower for names earlier in the alphabet."""

    def __init__(self, *, broken: frozenset[str] = frozenset()) -> None:
        self.broken = broken
        self.requests: list[str] = []
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        with self._lock:
            self.requests.append(path)
        module = path.split("/@v/")[0].lstrip("/")
        if module in self.broken:
            return httpx.Response(410)
        if path.endswith(".info"):
            # Reverse alphabetical completion order.
            time.sleep(0.02 * (ord("z") - ord(module.split("/")[-1][0])) / 25)
            return httpx.Response(200, json={"Version": "v1.0.0"})
        return httpx.Response(200, content=module.encode())


class TestIsPrivate:
    def test_empty_pattern_matches_nothing(self) -> None:
        assert is_private("", "github.com/pkg/errors") is False

    def test_glob(self) -> None:
        assert is_private("corp.example.com/*", "corp.example.com/lib") is True
        assert is_private("corp.example.com/*", "corp.example.com/lib/sub") is False
        assert is_private("corp.example.com/*", "github.com/pkg/errors") is False

    def test_malformed_pattern_counts_as_private(self) -> None:
        assert is_private("[", "github.com/pkg/errors") is True


class TestPrivateRule:
    def test_commit_only(self) -> None:
        rule = private_rule(DepProject("corp.example.com/lib", "deadbeef"))
        assert rule.attrs == {"importpath": "corp.example.com/lib", "commit": "deadbeef"}

    def test_source_override_assumes_git(self) -> None:
        project = DepProject("corp.example.com/lib", "deadbeef", "git@corp.example.com:lib.git")
        rule = private_rule(project)
        assert rule.attr("remote") == "git@corp.example.com:lib.git"
        assert rule.attr("vcs") == "git"


class TestResolveProjects:
    def test_sorted_regardless_of_completion_order(self) -> None:
        projects = [
            DepProject("github.com/zeta/z", "1"),
            DepProject("github.com/alpha/a", "2"),
            DepProject("github.com/mid/m", "3"),
        ]
        with httpx.Client(transport=httpx.MockTransport(SlowProxy())) as client:
            rules = resolve_projects(projects, go_proxy=PROXY, client=client, sleep=_no_sleep)

        assert [r.name for r in rules] == [
            "com_github_alpha_a",
            "com_github_mid_m",
            "com_github_zeta_z",
        ]
        assert all(r.attr("sha256") for r in rules)

    def test_private_projects_make_no_requests(self) -> None:
        proxy = SlowProxy()
        projects = [
            DepProject("corp.example.com/lib", "c0ffee"),
            DepProject("github.com/pkg/errors", "1"),
        ]
        with httpx.Client(transport=httpx.MockTransport(proxy)) as client:
            rules = resolve_projects(
                projects,
                go_proxy=PROXY,
                go_private="corp.example.com/*",
                client=client,
                sleep=_no_sleep,
            )

        assert [r.name for r in rules] == ["com_example_corp_lib", "com_github_pkg_errors"]
        assert rules[0].attrs == {"importpath": "corp.example.com/lib", "commit": "c0ffee"}
        assert not any("corp.example.com" in p for p in proxy.requests)

    def test_malformed_private_pattern_skips_proxy(self) -> None:
        proxy = SlowProxy()
        with httpx.Client(transport=httpx.MockTransport(proxy)) as client:
            rules = resolve_projects(
                [DepProject("github.com/pkg/errors", "1")],
                go_proxy=PROXY,
                go_private="[",
                client=client,
            )
        assert rules[0].attr("commit") == "1"
        assert proxy.requests == []

    def test_failure_returns_nothing(self) -> None:
        proxy = SlowProxy(broken=frozenset({"github.com/bad/b"}))
        projects = [DepProject("github.com/good/g", "1"), DepProject("github.com/bad/b", "2")]
        with (
            httpx.Client(transport=httpx.MockTransport(proxy)) as client,
            pytest.raises(ResolutionError, match="github.com/bad/b@2"),
        ):
            resolve_projects(projects, go_proxy=PROXY, client=client, attempts=2, sleep=_no_sleep)

    def test_empty_manifest(self) -> None:
        assert resolve_projects([]) == []

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValueError, match="attempts"):
            resolve_projects([DepProject("a.com/b", "1")], attempts=0)

    def test_rejects_negative_retry_delay(self) -> None:
        with pytest.raises(ValueError, match="retry_delay"):
            resolve_projects([DepProject("a.com/b", "1")], retry_delay=-1.0)

    def test_trailing_slash_on_proxy(self) -> None:
        with httpx.Client(transport=httpx.MockTransport(SlowProxy())) as client:
            rules = resolve_projects(
                [DepProject("github.com/pkg/errors", "1")], go_proxy=PROXY + "/", client=client
            )
        assert rules[0].attr("urls") == [f"{PROXY}/github.com/pkg/errors/@v/v1.0.0.zip"]


class TestImportReposFromDep:
    def test_reads_manifest(self, tmp_path: Path) -> None:
        lock = tmp_path / "Gopkg.lock"
        lock.write_text(
            '[[projects]]\n  name = "github.com/pkg/errors"\n  revision = "1"\n',
            encoding="utf-8",
        )
        with httpx.Client(transport=httpx.MockTransport(SlowProxy())) as client:
            rules = import_repos_from_dep(lock, go_proxy=PROXY, client=client)
        assert [r.name for r in rules] == ["com_github_pkg_errors"]

    def test_missing_manifest(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestError):
            import_repos_from_dep(tmp_path / "Gopkg.lock")
