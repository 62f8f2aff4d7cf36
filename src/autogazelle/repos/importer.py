"""Convert a ``Gopkg.lock`` manifest into sorted ``go_repository`` rules."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import TYPE_CHECKING

import httpx

from autogazelle.globs import BadPatternError, path_match
from autogazelle.repos.manifest import read_dep_lock
from autogazelle.repos.proxy import (
    DEFAULT_ATTEMPTS,
    DEFAULT_GO_PROXY,
    DEFAULT_RETRY_DELAY,
    REQUEST_TIMEOUT,
    resolve_with_retry,
)
from autogazelle.repos.rules import GeneratedRule, new_go_repository

if TYPE_CHECKING:
    import os
    from collections.abc import Callable

    from autogazelle.repos.manifest import DepProject

logger = logging.getLogger(__name__)


def is_private(go_private: str, name: str) -> bool:
    """Report whether *name* bypasses the proxy.

    A malformed pattern counts as a match: fetching straight from version
    control is the safe side when the user's intent is unclear.
    """
    try:
        return path_match(go_private, name)
    except BadPatternError:
        return True


def private_rule(project: DepProject) -> GeneratedRule:
    """Build a rule pinned to the manifest commit, fetched from version control.

    With a source override the remote is assumed to be Git.  Telling an import
    path from a URL, and detecting other version control systems, is not done.
    """
    rule = new_go_repository(project.name)
    rule.set_attr("commit", project.revision)
    if project.source:
        rule.set_attr("remote", project.source)
        rule.set_attr("vcs", "git")
    return rule


def resolve_projects(
    projects: list[DepProject],
    *,
    go_proxy: str = DEFAULT_GO_PROXY,
    go_private: str = "",
    client: httpx.Client | None = None,
    attempts: int = DEFAULT_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> list[GeneratedRule]:
    """Resolve every project concurrently and return the rules sorted by name.

    Each project gets its own worker thread, which writes only its own slot of
    a pre-sized result list.  All workers are joined before anything is read.
    If any project fails, the failure of the earliest project in manifest
    order is raised and no rules are returned.

    Raises
    ------
    ResolutionError
        If a project could not be resolved through the proxy.
    """
    if attempts < 1:
        msg = f"attempts must be at least 1, got {attempts}"
        raise ValueError(msg)
    if retry_delay < 0:
        msg = f"retry_delay must not be negative, got {retry_delay}"
        raise ValueError(msg)
    go_proxy = go_proxy.rstrip("/")
    if not projects:
        return []

    owns_client = client is None
    http = client
    if http is None:
        http = httpx.Client(timeout=REQUEST_TIMEOUT, follow_redirects=True)

    slots: list[GeneratedRule | None] = [None] * len(projects)

    def _resolve(index: int, project: DepProject) -> None:
        if is_private(go_private, project.name):
            slots[index] = private_rule(project)
            return
        rule = new_go_repository(project.name)
        resolve_with_retry(
            http,
            go_proxy,
            project,
            rule,
            attempts=attempts,
            retry_delay=retry_delay,
            sleep=sleep,
        )
        slots[index] = rule

    try:
        with ThreadPoolExecutor(
            max_workers=len(projects),
            thread_name_prefix="autogazelle-repo",
        ) as pool:
            futures = [pool.submit(_resolve, i, p) for i, p in enumerate(projects)]
            wait(futures)
    finally:
        if owns_client:
            http.close()

    for future in futures:
        exc = future.exception()
        if exc is not None:
            raise exc

    rules = [rule for rule in slots if rule is not None]
    rules.sort(key=lambda r: r.name)
    return rules


def import_repos_from_dep(
    path: str | os.PathLike[str],
    *,
    go_proxy: str = DEFAULT_GO_PROXY,
    go_private: str = "",
    client: httpx.Client | None = None,
    attempts: int = DEFAULT_ATTEMPTS,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> list[GeneratedRule]:
    """Read the manifest at *path* and resolve it with :func:`resolve_projects`.

    Raises
    ------
    ManifestError
        If the manifest cannot be read or decoded.
    ResolutionError
        If a project could not be resolved.
    """
    projects = read_dep_lock(path)
    logger.info("resolving %d project(s) from %s", len(projects), path)
    return resolve_projects(
        projects,
        go_proxy=go_proxy,
        go_private=go_private,
        client=client,
        attempts=attempts,
        retry_delay=retry_delay,
        sleep=sleep,
    )
