"""Daemon client: connect, then wait for the server to hang up."""

from __future__ import annotations

import logging
import os
import socket

logger = logging.getLogger(__name__)


class ClientError(Exception):
    """Raised when the server cannot be reached or the connection fails."""


def signal_server(socket_path: str | os.PathLike[str], *, timeout: float | None = None) -> None:
    """Ask the server for a regeneration pass and block until it finishes.

    Nothing is sent; the server closes the connection once its pass is done.
    The client never starts a server itself.

    Raises
    ------
    ClientError
        If the connection cannot be made (usually: no server running) or
        breaks or times out before the server closes it.
    """
    path = os.fspath(socket_path)
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        sock.settimeout(timeout)
        try:
            sock.connect(path)
        except OSError as exc:
            msg = f"cannot connect to server at {path}: {exc}"
            raise ClientError(msg) from exc

        logger.debug("connected to %s, waiting for server", path)
        try:
            while sock.recv(4096):
                pass
        except OSError as exc:
            msg = f"connection to server at {path} failed: {exc}"
            raise ClientError(msg) from exc
    finally:
        sock.close()
