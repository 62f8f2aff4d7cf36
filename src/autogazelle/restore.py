"""Restore checked-in build files from their ``.in`` templates."""

from __future__ import annotations

import contextlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import IO, TYPE_CHECKING

from autogazelle import PROGRAM_NAME
from autogazelle.walk import BUILD_FILE_NAMES, walk_workspace

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".in"
TEMPLATE_NAMES = frozenset(name + TEMPLATE_SUFFIX for name in BUILD_FILE_NAMES)


def generated_header(src_name: str, program_name: str = PROGRAM_NAME) -> str:
    """Return the stamp written above restored template contents."""
    return f"# This file was generated from {src_name}\n# by {program_name}\n# DO NOT EDIT\n\n"


@contextlib.contextmanager
def atomic_write(dest: str | os.PathLike[str]) -> Iterator[IO[bytes]]:
    """Yield a binary file that replaces *dest* only if the block succeeds.

    Data goes to a temporary file next to *dest*; it is renamed over *dest*
    after being closed, so an error while writing or closing leaves *dest*
    untouched and propagates.
    """
    dest_path = Path(dest)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{dest_path.name}.", dir=dest_path.parent)
    try:
        with os.fdopen(fd, "wb") as writer:
            yield writer
        # mkstemp creates 0600; build files must stay readable.
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, dest_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def restore_file(
    src: str | os.PathLike[str],
    dest: str | os.PathLike[str],
    program_name: str = PROGRAM_NAME,
) -> None:
    """Write *dest* as the generated header followed by the bytes of *src*.

    Any error, including one raised while closing *dest*, propagates; callers
    should treat *dest* as stale and re-run.

    Raises
    ------
    OSError
        If *src* cannot be read or *dest* cannot be written.
    """
    src_path = Path(src)
    header = generated_header(src_path.name, program_name).encode("utf-8")
    with src_path.open("rb") as reader, atomic_write(dest) as writer:
        writer.write(header)
        shutil.copyfileobj(reader, writer)


def restore_build_files_in_repo(root: str | os.PathLike[str] = ".") -> list[Path]:
    """Restore every ``BUILD.in`` / ``BUILD.bazel.in`` found under *root*.

    A template that fails to restore is logged and skipped; the rest of the
    tree is still processed.  Returns the destinations that were written.
    """
    restored: list[Path] = []

    def _visit(dir_path: str, files: list[str]) -> None:
        for name in files:
            if name not in TEMPLATE_NAMES:
                continue
            src = Path(dir_path) / name
            dest = src.with_name(name[: -len(TEMPLATE_SUFFIX)])
            try:
                restore_file(src, dest)
            except OSError as exc:
                logger.warning("%s", exc)
                continue
            restored.append(dest)

    walk_workspace(root, _visit)
    return restored


def restore_build_files_in_dir(dir_path: str | os.PathLike[str]) -> list[Path]:
    """Restore the templates of a single directory, ``BUILD.bazel`` before ``BUILD``.

    Missing templates are not an error.
    """
    restored: list[Path] = []
    for base in BUILD_FILE_NAMES:
        src = Path(dir_path) / (base + TEMPLATE_SUFFIX)
        if not src.exists():
            continue
        dest = Path(dir_path) / base
        try:
            restore_file(src, dest)
        except OSError as exc:
            logger.warning("%s", exc)
            continue
        restored.append(dest)
    return restored
