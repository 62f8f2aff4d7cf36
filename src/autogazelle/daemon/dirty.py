"""Thread-safe set of directories that need regenerating."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class DirtySet:
    """Deduplicated directories recorded since the last drain.

    The change watcher adds from its own thread while the server drains at the
    start of each pass, so every access holds the lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._dirs: set[str] = set()

    def add(self, path: str) -> None:
        with self._lock:
            self._dirs.add(path)

    def update(self, paths: Iterable[str]) -> None:
        with self._lock:
            self._dirs.update(paths)

    def drain(self) -> list[str]:
        """Return the recorded directories (sorted) and clear the set atomically."""
        with self._lock:
            dirs, self._dirs = self._dirs, set()
        return sorted(dirs)

    def __len__(self) -> int:
        with self._lock:
            return len(self._dirs)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._dirs
