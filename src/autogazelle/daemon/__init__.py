"""Change-triggered gazelle daemon: server, client, dirty-directory tracking."""

from autogazelle.daemon.client import ClientError, signal_server
from autogazelle.daemon.dirty import DirtySet
from autogazelle.daemon.server import DaemonServer, PassResult, ServerError, ServerState
from autogazelle.daemon.watcher import ChangeWatcher

__all__ = [
    "ChangeWatcher",
    "ClientError",
    "DaemonServer",
    "DirtySet",
    "PassResult",
    "ServerError",
    "ServerState",
    "signal_server",
]
