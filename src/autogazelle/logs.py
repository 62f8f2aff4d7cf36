"""Logging setup shared by the daemon client, server and the importer."""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

from autogazelle import PROGRAM_NAME

if TYPE_CHECKING:
    from pathlib import Path

LOG_FORMAT = f"{PROGRAM_NAME}: %(asctime)s %(message)s"
DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


def configure_logging(log_path: Path | None = None, *, verbose: bool = False) -> logging.Handler:
    """Route ``autogazelle.*`` loggers to *log_path* (appending) or stderr.

    Any handler installed by an earlier call is replaced, so the server can
    switch from stderr to its log file once the workspace is known.
    """
    root = logging.getLogger(PROGRAM_NAME)
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()

    handler: logging.Handler
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    return handler
