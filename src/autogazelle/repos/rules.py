"""``go_repository`` rules produced by the importer, and their Starlark rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

AttrValue = Union[str, list[str]]

GO_REPOSITORY = "go_repository"


def import_path_to_repo_name(importpath: str) -> str:
    """Derive a Bazel repository name from a Go import path.

    The host's dot-separated labels are reversed, the remaining path
    components appended, and ``-``/``.`` become ``_``::

        github.com/pkg/errors  ->  com_github_pkg_errors
        golang.org/x/net       ->  org_golang_x_net
    """
    components = importpath.lower().split("/")
    labels = components[0].split(".")
    repo = ".".join(list(reversed(labels)) + components[1:])
    return repo.replace("-", "_").replace(".", "_")


@dataclass
class GeneratedRule:
    """A rule call: kind, name and attributes in insertion order."""

    kind: str
    name: str
    attrs: dict[str, AttrValue] = field(default_factory=dict)

    def set_attr(self, key: str, value: AttrValue) -> None:
        self.attrs[key] = value

    def attr(self, key: str) -> AttrValue | None:
        return self.attrs.get(key)


def new_go_repository(importpath: str) -> GeneratedRule:
    """Start a ``go_repository`` rule named after *importpath*."""
    rule = GeneratedRule(kind=GO_REPOSITORY, name=import_path_to_repo_name(importpath))
    rule.set_attr("importpath", importpath)
    return rule


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def _format_value(value: AttrValue) -> str:
    if isinstance(value, str):
        return _quote(value)
    return "[" + ", ".join(_quote(v) for v in value) + "]"


def format_rule(rule: GeneratedRule) -> str:
    """Render one rule as a Starlark call with ``name`` first."""
    lines = [f"{rule.kind}(", f"    name = {_quote(rule.name)},"]
    for key, value in rule.attrs.items():
        lines.append(f"    {key} = {_format_value(value)},")
    lines.append(")")
    return "\n".join(lines)


def format_rules(rules: list[GeneratedRule]) -> str:
    """Render rules separated by blank lines, with a trailing newline."""
    if not rules:
        return ""
    return "\n\n".join(format_rule(rule) for rule in rules) + "\n"
