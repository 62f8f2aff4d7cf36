"""Workspace directory walker honouring gazelle visibility directives.

Directives are read from each directory's build file (``BUILD.bazel`` is
preferred over ``BUILD``)::

    # gazelle:exclude <glob>   hide matching files and directories (inherited)
    # gazelle:follow <glob>    traverse matching symlinked directories (inherited)
    # gazelle:ignore           build file is hand-written; recorded on WalkConfig only

Globs are relative to the directory holding the directive.  Directories named
in the root ``.bazelignore`` are never visited.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING

from autogazelle.globs import BadPatternError, match_rel_path, path_match

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)

BUILD_FILE_NAMES = ("BUILD.bazel", "BUILD")

_DIRECTIVE_RE = re.compile(r"^\s*#\s*gazelle:(\w+)\s*(.*?)\s*$")


class WalkError(Exception):
    """Raised when the walk cannot start at all."""


@dataclass(frozen=True)
class WalkConfig:
    """Visibility settings in effect for one directory."""

    excludes: tuple[str, ...] = ()
    follow: tuple[str, ...] = ()
    ignore: bool = False

    def is_excluded(self, rel: str) -> bool:
        return any(match_rel_path(pattern, rel) for pattern in self.excludes)

    def should_follow(self, rel: str) -> bool:
        return any(match_rel_path(pattern, rel) for pattern in self.follow)


def _join_rel(rel: str, name: str) -> str:
    return f"{rel}/{name}" if rel else name


def _valid_glob(pattern: str) -> bool:
    try:
        for segment in pattern.split("/"):
            if segment != "**":
                path_match(segment, "")
    except BadPatternError:
        return False
    return True


def read_directives(dir_path: Path) -> list[tuple[str, str]]:
    """Return ``(key, value)`` pairs of ``# gazelle:`` directives in *dir_path*'s build file."""
    for name in BUILD_FILE_NAMES:
        build_file = dir_path / name
        if build_file.is_file():
            text = build_file.read_text(encoding="utf-8", errors="replace")
            directives: list[tuple[str, str]] = []
            for line in text.splitlines():
                match = _DIRECTIVE_RE.match(line)
                if match:
                    directives.append((match.group(1), match.group(2)))
            return directives
    return []


def configure_dir(
    parent: WalkConfig,
    rel: str,
    directives: Iterable[tuple[str, str]],
) -> WalkConfig:
    """Derive a directory's :class:`WalkConfig` from its parent's and its own directives."""
    excludes = list(parent.excludes)
    follow = list(parent.follow)
    ignore = False
    for key, value in directives:
        if key == "ignore":
            ignore = True
        elif key in ("exclude", "follow"):
            if not value:
                continue
            pattern = _join_rel(rel, value)
            if not _valid_glob(pattern):
                logger.warning("%s: invalid %s pattern %r", rel or ".", key, value)
                continue
            (excludes if key == "exclude" else follow).append(pattern)
    return replace(parent, excludes=tuple(excludes), follow=tuple(follow), ignore=ignore)


def load_bazelignore(root: Path) -> frozenset[str]:
    """Read repo-relative directories listed in ``<root>/.bazelignore``."""
    path = root / ".bazelignore"
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return frozenset()
    except OSError as exc:
        logger.warning("cannot read %s: %s", path, exc)
        return frozenset()

    entries: set[str] = set()
    for line in text.splitlines():
        entry = line.strip()
        if not entry or entry.startswith("#"):
            continue
        entries.add(entry.strip("/"))
    return frozenset(entries)


def walk_workspace(
    root: str | os.PathLike[str],
    walk_func: Callable[[str, list[str]], None],
) -> None:
    """Traverse the tree under *root*, calling ``walk_func(dir, files)`` per directory.

    *dir* is absolute; *files* lists the base names of visible regular files
    (symlinks to files included), excluding directories and anything hidden by
    an exclude directive.  Unreadable subdirectories are logged and skipped.

    Raises
    ------
    WalkError
        If *root* cannot be made absolute.  No callback is invoked.
    """
    try:
        abs_root = Path(os.path.abspath(root))
    except OSError as exc:
        msg = f"failed to find absolute path: {exc}"
        raise WalkError(msg) from exc

    ignored = load_bazelignore(abs_root)
    seen: set[str] = set()
    stack: list[tuple[Path, str, WalkConfig]] = [(abs_root, "", WalkConfig())]
    while stack:
        dir_path, rel, parent_cfg = stack.pop()

        real = os.path.realpath(dir_path)
        if real in seen:
            continue
        seen.add(real)

        try:
            cfg = configure_dir(parent_cfg, rel, read_directives(dir_path))
        except OSError as exc:
            logger.warning("cannot read build file in %s: %s", dir_path, exc)
            cfg = replace(parent_cfg, ignore=False)

        files, subdirs = _scan(dir_path, rel, cfg, ignored)
        if files is None:
            continue

        walk_func(str(dir_path), files)

        # Reverse so the stack pops subdirectories in sorted order.
        for name in reversed(subdirs):
            stack.append((dir_path / name, _join_rel(rel, name), cfg))


def _scan(
    dir_path: Path,
    rel: str,
    cfg: WalkConfig,
    ignored: frozenset[str],
) -> tuple[list[str] | None, list[str]]:
    """Split a directory's entries into visible files and traversable subdirectories."""
    try:
        with os.scandir(dir_path) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as exc:
        logger.warning("cannot read directory %s: %s", dir_path, exc)
        return None, []

    files: list[str] = []
    subdirs: list[str] = []
    for entry in entries:
        entry_rel = _join_rel(rel, entry.name)
        if cfg.is_excluded(entry_rel):
            continue
        try:
            if entry.is_symlink():
                if entry.is_dir():
                    if entry_rel not in ignored and cfg.should_follow(entry_rel):
                        subdirs.append(entry.name)
                elif entry.is_file():
                    files.append(entry.name)
            elif entry.is_dir(follow_symlinks=False):
                if entry.name != ".git" and entry_rel not in ignored:
                    subdirs.append(entry.name)
            elif entry.is_file(follow_symlinks=False):
                files.append(entry.name)
        except OSError as exc:
            logger.warning("cannot stat %s: %s", entry.path, exc)
    return files, subdirs


def list_workspace_dirs(root: str | os.PathLike[str]) -> set[str]:
    """Return the absolute paths of every directory :func:`walk_workspace` visits."""
    dirs: set[str] = set()
    walk_workspace(root, lambda dir_path, _files: dirs.add(dir_path))
    return dirs
