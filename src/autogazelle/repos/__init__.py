"""Dependency importer: ``Gopkg.lock`` to content-addressed ``go_repository`` rules."""

from autogazelle.repos.importer import import_repos_from_dep, is_private, resolve_projects
from autogazelle.repos.manifest import DepProject, ManifestError, parse_dep_lock, read_dep_lock
from autogazelle.repos.proxy import (
    DEFAULT_GO_PROXY,
    ProxyError,
    ResolutionError,
    module_path,
    rule_using_go_proxy,
)
from autogazelle.repos.rules import GeneratedRule, format_rules, import_path_to_repo_name

__all__ = [
    "DEFAULT_GO_PROXY",
    "DepProject",
    "GeneratedRule",
    "ManifestError",
    "ProxyError",
    "ResolutionError",
    "format_rules",
    "import_path_to_repo_name",
    "import_repos_from_dep",
    "is_private",
    "module_path",
    "parse_dep_lock",
    "read_dep_lock",
    "resolve_projects",
    "rule_using_go_proxy",
]
