"""Daemon server: regenerate dirty directories whenever a client connects.

Protocol: a client connects to the UNIX socket and waits.  The server runs one
regeneration pass over the directories recorded since the previous pass, then
closes the connection without writing anything.  Closure is the
acknowledgement.  Passes never overlap; connections that arrive meanwhile are
queued and served in order, each draining whatever is dirty at its turn.

The server exits once no client has connected for the configured timeout.
"""

from __future__ import annotations

import enum
import functools
import logging
import queue
import socket
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from autogazelle.daemon.dirty import DirtySet
from autogazelle.daemon.watcher import ChangeWatcher
from autogazelle.gazelle import GazelleError, Mode, run_gazelle
from autogazelle.restore import restore_build_files_in_dir, restore_build_files_in_repo
from autogazelle.walk import WalkError

if TYPE_CHECKING:
    from collections.abc import Callable

    from autogazelle.config import DaemonConfig

logger = logging.getLogger(__name__)

# How often the accept thread wakes up to check for shutdown.
ACCEPT_POLL_SECONDS = 0.5


class ServerError(Exception):
    """Raised when the server cannot start."""


class ServerState(enum.Enum):
    IDLE = "idle"
    LISTENING = "listening"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PassResult:
    """Outcome of one regeneration pass."""

    dirs: list[str] = field(default_factory=list)
    ran: bool = False
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DaemonServer:
    """All server state: dirty directories, listener, connection queue and lifecycle."""

    def __init__(
        self,
        config: DaemonConfig,
        *,
        invoker: Callable[[Mode, list[str]], bool] | None = None,
        dirty: DirtySet | None = None,
        watch: bool = True,
        startup_full_run: bool = True,
    ) -> None:
        self.config = config
        self.dirty = dirty if dirty is not None else DirtySet()
        self.state = ServerState.IDLE
        self.passes = 0
        self.startup_full_run = startup_full_run
        self._invoker = invoker or functools.partial(
            run_gazelle,
            bazel=config.bazel,
            gazelle_label=config.gazelle_label,
        )
        self._connections: queue.Queue[socket.socket] = queue.Queue()
        self._stop = threading.Event()
        self._listener: socket.socket | None = None
        self._accept_thread: threading.Thread | None = None
        self._watcher: ChangeWatcher | None = None
        if watch:
            self._watcher = ChangeWatcher(config.workspace_dir, self.dirty, stop_event=self._stop)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def bind(self) -> None:
        """Create the listening socket, replacing a stale socket file."""
        path = self.config.socket_path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if path.exists() or path.is_symlink():
                path.unlink()
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        except OSError as exc:
            self.state = ServerState.STOPPED
            msg = f"failed to prepare socket {path}: {exc}"
            raise ServerError(msg) from exc
        try:
            sock.bind(str(path))
            sock.listen(16)
        except OSError as exc:
            sock.close()
            self.state = ServerState.STOPPED
            msg = f"failed to listen on {path}: {exc}"
            raise ServerError(msg) from exc
        sock.settimeout(ACCEPT_POLL_SECONDS)
        self._listener = sock
        logger.info("listening on %s", path)

    def serve(self) -> None:
        """Run until idle for ``config.timeout`` seconds.

        Raises
        ------
        ServerError
            If the socket cannot be bound.
        """
        if self._listener is None:
            self.bind()
        try:
            if self._watcher is not None:
                self._watcher.start()
            if self.startup_full_run:
                self.run_full_pass()

            self._accept_thread = threading.Thread(
                target=self._accept_loop,
                name="autogazelle-accept",
                daemon=True,
            )
            self._accept_thread.start()

            while True:
                self.state = ServerState.LISTENING
                try:
                    conn = self._connections.get(timeout=self.config.timeout)
                except queue.Empty:
                    logger.info("no connections for %.0fs, exiting", self.config.timeout)
                    break
                self.state = ServerState.RUNNING
                try:
                    self.run_pass()
                finally:
                    conn.close()
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Stop accepting, close the socket and remove its file."""
        self._stop.set()
        if self._accept_thread is not None:
            self._accept_thread.join()
            self._accept_thread = None
        if self._listener is not None:
            self._listener.close()
            self._listener = None
            self.config.socket_path.unlink(missing_ok=True)
        while True:
            try:
                self._connections.get_nowait().close()
            except queue.Empty:
                break
        if self._watcher is not None:
            self._watcher.stop()
        self.state = ServerState.STOPPED

    def _accept_loop(self) -> None:
        listener = self._listener
        assert listener is not None
        while not self._stop.is_set():
            try:
                conn, _ = listener.accept()
            except TimeoutError:
                continue
            except OSError as exc:
                if not self._stop.is_set():
                    logger.error("accept failed: %s", exc)
                return
            conn.settimeout(None)
            self._connections.put(conn)

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def run_pass(self) -> PassResult:
        """Regenerate the directories recorded since the previous pass.

        The dirty set is drained before anything runs, so a failed pass is not
        retried; changes recorded while it runs wait for the next pass.
        """
        dirs = self.dirty.drain()
        self.passes += 1
        for rel in dirs:
            restore_build_files_in_dir(self.config.workspace_dir / rel)
        try:
            ran = self._invoker(Mode.FAST, dirs)
        except GazelleError as exc:
            logger.error("%s", exc)
            return PassResult(dirs=dirs, error=exc)
        return PassResult(dirs=dirs, ran=ran)

    def run_full_pass(self) -> PassResult:
        """Restore every template in the workspace and run gazelle everywhere."""
        try:
            restore_build_files_in_repo(self.config.workspace_dir)
        except WalkError as exc:
            logger.error("%s", exc)
        try:
            ran = self._invoker(Mode.FULL, [])
        except GazelleError as exc:
            logger.error("%s", exc)
            return PassResult(error=exc)
        return PassResult(ran=ran)
