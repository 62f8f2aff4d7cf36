"""Read ``Gopkg.lock`` manifests."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

if TYPE_CHECKING:
    import os


class ManifestError(Exception):
    """Raised when a manifest cannot be read or decoded."""


@dataclass(frozen=True)
class DepProject:
    """One pinned dependency from the manifest."""

    name: str
    revision: str
    source: str = ""


def _field(entry: dict[str, Any], key: str, index: int) -> str:
    value = entry.get(key, "")
    if not isinstance(value, str):
        msg = f"projects[{index}].{key} must be a string, got {type(value).__name__}"
        raise ManifestError(msg)
    return value


def parse_dep_lock(text: str) -> list[DepProject]:
    """Decode manifest text into its ``[[projects]]`` entries, in file order.

    Other tables (``[solve-meta]`` and friends) are ignored.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        msg = f"invalid manifest: {exc}"
        raise ManifestError(msg) from exc

    raw_projects = data.get("projects", [])
    if not isinstance(raw_projects, list):
        msg = "'projects' must be an array of tables"
        raise ManifestError(msg)

    projects: list[DepProject] = []
    for index, entry in enumerate(raw_projects):
        if not isinstance(entry, dict):
            msg = f"projects[{index}] must be a table"
            raise ManifestError(msg)
        projects.append(
            DepProject(
                name=_field(entry, "name", index),
                revision=_field(entry, "revision", index),
                source=_field(entry, "source", index),
            )
        )
    return projects


def read_dep_lock(path: str | os.PathLike[str]) -> list[DepProject]:
    """Read and decode the manifest at *path*.

    Raises
    ------
    ManifestError
        If the file cannot be read or is not a valid manifest.
    """
    try:
        with open(path, "rb") as fh:
            raw = fh.read()
    except OSError as exc:
        msg = f"cannot read manifest {path}: {exc}"
        raise ManifestError(msg) from exc
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        msg = f"manifest {path} is not UTF-8: {exc}"
        raise ManifestError(msg) from exc
    return parse_dep_lock(text)
