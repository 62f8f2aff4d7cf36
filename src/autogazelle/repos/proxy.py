"""Resolve pinned dependencies through a Go module proxy."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from collections.abc import Callable

    from autogazelle.repos.manifest import DepProject
    from autogazelle.repos.rules import GeneratedRule

logger = logging.getLogger(__name__)

DEFAULT_GO_PROXY = "https://proxy.golang.org"
DEFAULT_ATTEMPTS = 5
DEFAULT_RETRY_DELAY = 5.0
REQUEST_TIMEOUT = 60.0


class ProxyError(Exception):
    """Raised when a single proxy resolution attempt fails."""


class ResolutionError(Exception):
    """Raised when a project could not be resolved after every retry."""

    def __init__(self, project: DepProject, attempts: int, cause: Exception) -> None:
        self.project = project
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"failed to resolve {project.name}@{project.revision} "
            f"after {attempts} attempts: {cause}"
        )


def module_path(project: DepProject) -> str:
    """Return the proxy module path for *project*.

    A source override wins over the name; its ``.git`` suffix and ``https://``
    prefix are dropped.  The proxy expects lower case.
    """
    name = project.name
    if project.source:
        name = project.source
        name = name.removesuffix(".git")
        name = name.removeprefix("https://")
    return name.lower()


def rule_using_go_proxy(
    client: httpx.Client,
    go_proxy: str,
    project: DepProject,
    rule: GeneratedRule,
) -> None:
    """Fill *rule* with the proxy archive URL, its SHA-256 and strip prefix.

    The ``.info`` endpoint yields the canonical version; the ``.zip`` archive
    is streamed through the hash without being held in memory.

    Raises
    ------
    ProxyError
        On a transport error, a non-200 status or an undecodable response.
    """
    name = module_path(project)
    what = f"{name}@{project.revision}"

    info_url = f"{go_proxy}/{name}/@v/{project.revision}.info"
    try:
        response = client.get(info_url)
    except httpx.HTTPError as exc:
        msg = f"failed to fetch info for {what}: {exc}"
        raise ProxyError(msg) from exc
    if response.status_code != 200:
        msg = f"failed to fetch info for {what}: {response.status_code} {response.reason_phrase}"
        raise ProxyError(msg)
    try:
        version = response.json()["Version"]
    except (json.JSONDecodeError, UnicodeDecodeError, KeyError, TypeError) as exc:
        msg = f"failed to decode response for {what}: {exc}"
        raise ProxyError(msg) from exc
    if not isinstance(version, str) or not version:
        msg = f"failed to decode response for {what}: no Version"
        raise ProxyError(msg)

    zip_url = f"{go_proxy}/{name}/@v/{version}.zip"
    digest = hashlib.sha256()
    try:
        with client.stream("GET", zip_url) as stream:
            if stream.status_code != 200:
                msg = f"failed to fetch zip for {what}: {stream.status_code} {stream.reason_phrase}"
                raise ProxyError(msg)
            for chunk in stream.iter_bytes():
                digest.update(chunk)
    except httpx.HTTPError as exc:
        msg = f"failed to hash zip for {what}: {exc}"
        raise ProxyError(msg) from exc

    sha256 = digest.hexdigest()
    logger.info("%s: %s", what, sha256)

    rule.set_attr("urls", [zip_url])
    rule.set_attr("sha256", sha256)
    rule.set_attr("strip_prefix", f"{name}@{version}")


def resolve_with_retry(
    client: httpx.Client,
    go_proxy: str,
    project: DepProject,
    rule: GeneratedRule,
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Run :func:`rule_using_go_proxy`, retrying with a fixed delay.

    The proxy occasionally answers 410 for commits that do exist, so every
    failure is retried; there is no sleep after the final attempt.

    Raises
    ------
    ResolutionError
        After *attempts* failures, carrying the last one.
    """
    last: ProxyError | None = None
    for attempt in range(1, attempts + 1):
        try:
            rule_using_go_proxy(client, go_proxy, project, rule)
        except ProxyError as exc:
            last = exc
            logger.warning("attempt %d/%d: %s", attempt, attempts, exc)
            if attempt < attempts:
                sleep(retry_delay)
            continue
        return
    assert last is not None
    raise ResolutionError(project, attempts, last)
