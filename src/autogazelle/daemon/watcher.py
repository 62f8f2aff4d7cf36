"""File watcher: record directories whose contents changed into a :class:`DirtySet`."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from autogazelle.walk import BUILD_FILE_NAMES, list_workspace_dirs

if TYPE_CHECKING:
    from collections.abc import Iterable

    from autogazelle.daemon.dirty import DirtySet

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 200

# Written by gazelle itself; recording them would re-dirty every pass.
_GENERATED_NAMES = frozenset(BUILD_FILE_NAMES)

_TEMP_SUFFIXES = (".tmp", ".swp", ".swx", "~")


def _is_relevant(rel: PurePosixPath) -> bool:
    """Keep changes outside hidden dirs, ``bazel-*`` links and editor temp files."""
    if not rel.parts:
        return False
    if any(part.startswith(".") for part in rel.parts):
        return False
    if rel.parts[0].startswith("bazel-"):
        return False

    name = rel.name
    if name.startswith("~") or name.endswith(_TEMP_SUFFIXES):
        return False
    return name not in _GENERATED_NAMES


def _rel_dir(path: PurePosixPath) -> str:
    parent = str(path.parent)
    return parent if parent else "."


class ChangeWatcher:
    """Background thread translating file-system events into dirty directories.

    Only directories the directory walker would visit are recorded, so
    ``# gazelle:exclude`` directives and ``.bazelignore`` are honoured.
    Recorded paths are relative to *root* (``"."`` for the root itself).
    """

    def __init__(
        self,
        root: Path,
        dirty: DirtySet,
        *,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.root = root.absolute()
        self.dirty = dirty
        self.debounce_ms = debounce_ms
        self.stop_event = stop_event or threading.Event()
        self._visible: set[str] = set()
        self._thread: threading.Thread | None = None

    def refresh(self) -> None:
        """Recompute the set of visible directories from a fresh walk."""
        visible: set[str] = set()
        for abs_dir in list_workspace_dirs(self.root):
            rel = os.path.relpath(abs_dir, self.root)
            visible.add(Path(rel).as_posix())
        self._visible = visible

    def record(self, changes: Iterable[tuple[object, str]]) -> set[str]:
        """Mark the parent directory of every relevant change dirty.

        A newly created directory triggers a re-walk, so it becomes visible
        only if the walker would visit it.  Returns the directories recorded by this call.
        """
        rels: list[PurePosixPath] = []
        for _change, path_str in changes:
            try:
                rel = Path(path_str).absolute().relative_to(self.root)
            except ValueError:
                continue
            rel_posix = PurePosixPath(rel.as_posix())
            if _is_relevant(rel_posix):
                rels.append(rel_posix)

        # Parents first so files inside a new directory find it visible.
        rels.sort(key=lambda p: len(p.parts))

        recorded: set[str] = set()
        refreshed = False
        for rel in rels:
            parent = _rel_dir(rel)
            if parent not in self._visible:
                continue
            if not refreshed and str(rel) not in self._visible and (self.root / rel).is_dir():
                # New directory: re-walk so exclude directives and .bazelignore apply.
                self.refresh()
                refreshed = True
            recorded.add(parent)

        if recorded:
            logger.debug("dirty: %s", ", ".join(sorted(recorded)))
            self.dirty.update(recorded)
        return recorded

    def start(self) -> None:
        """Walk the workspace and start watching on a daemon thread."""
        self.refresh()
        self._thread = threading.Thread(target=self._run, name="autogazelle-watch", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self.stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        from watchfiles import watch

        logger.info("watching %s", self.root)
        try:
            for batch in watch(
                self.root,
                debounce=self.debounce_ms,
                step=50,
                stop_event=self.stop_event,
                raise_interrupt=False,
            ):
                # watchfiles yields set[tuple[Change, str]]; Change is an int enum.
                self.record(batch)  # type: ignore[arg-type]
        except (OSError, RuntimeError) as exc:
            logger.warning("file watcher stopped: %s", exc)
