"""Daemon configuration: environment, command-line flags and ``tools/autogazelle.yml``."""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from autogazelle.repos.proxy import DEFAULT_GO_PROXY

WORKSPACE_ENV = "BUILD_WORKSPACE_DIRECTORY"
BAZEL_ENV = "BAZEL_REAL"

DEFAULT_TIMEOUT = 3600.0
DEFAULT_SOCKET = "tools/autogazelle.socket"
DEFAULT_LOG = "tools/autogazelle.log"
CONFIG_FILE = "tools/autogazelle.yml"

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


class ConfigError(Exception):
    """Raised when the environment or configuration is unusable."""


@dataclass(frozen=True)
class DaemonConfig:
    """Everything the daemon client and server need to run."""

    workspace_dir: Path
    bazel: str
    gazelle_label: str
    timeout: float = DEFAULT_TIMEOUT  # seconds
    socket_path: Path = Path(DEFAULT_SOCKET)
    log_path: Path = Path(DEFAULT_LOG)


def parse_duration(text: str) -> float:
    """Parse a Go-style duration (``1h``, ``30m``, ``1h30m``, ``500ms``) into seconds.

    A bare number is read as seconds.

    Raises
    ------
    ConfigError
        If *text* is not a valid duration.
    """
    value = text.strip()
    if not value:
        msg = "invalid duration: empty string"
        raise ConfigError(msg)

    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        if not math.isfinite(seconds):
            msg = f"invalid duration: {text!r}"
            raise ConfigError(msg)
        return seconds

    sign = 1.0
    if value[0] in "+-":
        sign = -1.0 if value[0] == "-" else 1.0
        value = value[1:]

    total = 0.0
    pos = 0
    for match in _DURATION_PART_RE.finditer(value):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(value) or pos == 0 or not math.isfinite(total):
        msg = f"invalid duration: {text!r}"
        raise ConfigError(msg)
    return sign * total


def read_config_file(workspace_dir: Path) -> dict[str, Any]:
    """Load ``tools/autogazelle.yml`` from the workspace, or ``{}`` if absent.

    Raises
    ------
    ConfigError
        If the file exists but is not a YAML mapping.
    """
    path = workspace_dir / CONFIG_FILE
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        msg = f"cannot read {CONFIG_FILE}: {exc}"
        raise ConfigError(msg) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"{CONFIG_FILE} must contain a mapping"
        raise ConfigError(msg)
    return data


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if value is None:
        msg = f"{name} not set"
        raise ConfigError(msg)
    return value


def enter_workspace() -> Path:
    """Change the working directory to ``$BUILD_WORKSPACE_DIRECTORY`` and return it."""
    workspace = Path(_require_env(WORKSPACE_ENV))
    try:
        os.chdir(workspace)
    except OSError as exc:
        msg = f"cannot enter workspace {workspace}: {exc}"
        raise ConfigError(msg) from exc
    return workspace.absolute()


def load_daemon_config(
    *,
    gazelle_label: str | None = None,
    timeout: str | None = None,
    socket_path: str | None = None,
    log_path: str | None = None,
) -> DaemonConfig:
    """Build the daemon configuration.

    Enters the workspace first, then validates ``BAZEL_REAL`` and the gazelle
    label.  Explicit arguments win over ``tools/autogazelle.yml``, which wins
    over the built-in defaults.  Relative socket and log paths are resolved
    against the workspace root.
    """
    workspace = enter_workspace()
    bazel = _require_env(BAZEL_ENV)
    file_config = read_config_file(workspace)

    label = gazelle_label or file_config.get("gazelle") or ""
    if not label:
        msg = "-gazelle not set"
        raise ConfigError(msg)

    raw_timeout = timeout if timeout is not None else file_config.get("timeout")
    seconds = DEFAULT_TIMEOUT if raw_timeout is None else parse_duration(str(raw_timeout))
    if seconds <= 0:
        msg = f"timeout must be positive: {raw_timeout!r}"
        raise ConfigError(msg)

    sock = Path(socket_path or file_config.get("socket") or DEFAULT_SOCKET)
    log = Path(log_path or file_config.get("log") or DEFAULT_LOG)

    return DaemonConfig(
        workspace_dir=workspace,
        bazel=bazel,
        gazelle_label=str(label),
        timeout=seconds,
        socket_path=sock if sock.is_absolute() else workspace / sock,
        log_path=log if log.is_absolute() else workspace / log,
    )


@dataclass(frozen=True)
class ImportSettings:
    """Module proxy settings for the dependency importer."""

    go_proxy: str
    go_private: str


def _proxy_from_env(value: str) -> str | None:
    # GOPROXY is a list; ``direct`` and ``off`` are not URLs we can query.
    for entry in re.split(r"[,|]", value):
        entry = entry.strip()
        if entry.startswith(("https://", "http://")):
            return entry
    return None


def load_import_settings(
    *,
    go_proxy: str | None = None,
    go_private: str | None = None,
) -> ImportSettings:
    """Resolve proxy settings: flag, then ``$GOPROXY``/``$GOPRIVATE``, then config file.

    The config file is only consulted when ``$BUILD_WORKSPACE_DIRECTORY`` is set.
    """
    file_config: dict[str, Any] = {}
    workspace = os.environ.get(WORKSPACE_ENV)
    if workspace:
        file_config = read_config_file(Path(workspace))

    proxy = (
        go_proxy
        or _proxy_from_env(os.environ.get("GOPROXY", ""))
        or file_config.get("go_proxy")
        or DEFAULT_GO_PROXY
    )
    private = go_private
    if private is None:
        private = os.environ.get("GOPRIVATE") or file_config.get("go_private") or ""

    return ImportSettings(go_proxy=str(proxy).rstrip("/"), go_private=str(private))
