"""Run gazelle through ``bazel run`` over the whole repository or selected directories."""

from __future__ import annotations

import enum
import logging
import subprocess
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)


class GazelleError(Exception):
    """Raised when gazelle cannot be launched or exits unsuccessfully."""


class Mode(enum.Enum):
    """How much of the repository a gazelle run covers."""

    FULL = "full"  # whole repository, recursive
    FAST = "fast"  # only the given directories, non-recursive


def build_gazelle_args(
    mode: Mode,
    dirs: Iterable[str],
    *,
    bazel: str,
    gazelle_label: str,
) -> list[str]:
    """Return the argv used to invoke gazelle."""
    args = [bazel, "run", gazelle_label, "--", "-args", "-index=false"]
    if mode is Mode.FAST:
        args.append("-r=false")
        args.extend(sorted(set(dirs)))
    return args


def run_gazelle(
    mode: Mode,
    dirs: Iterable[str] = (),
    *,
    bazel: str,
    gazelle_label: str,
    runner: Callable[..., Any] = subprocess.run,
) -> bool:
    """Invoke gazelle synchronously with inherited stdout/stderr.

    A fast-mode call with no directories does nothing.  Returns ``True`` if
    gazelle ran, ``False`` if there was nothing to do.

    Raises
    ------
    GazelleError
        If the process cannot start or exits non-zero.  No retry is attempted.
    """
    dir_list = list(dirs)
    if mode is Mode.FAST and not dir_list:
        return False

    args = build_gazelle_args(mode, dir_list, bazel=bazel, gazelle_label=gazelle_label)
    logger.info("running gazelle: %s", " ".join(args))
    try:
        runner(args, check=True)
    except subprocess.CalledProcessError as exc:
        msg = f"gazelle exited with status {exc.returncode}"
        raise GazelleError(msg) from exc
    except OSError as exc:
        msg = f"failed to run {args[0]}: {exc}"
        raise GazelleError(msg) from exc
    return True
