"""Slash-separated glob matching with Go ``path.Match`` semantics.

Patterns come from two places: the ``GOPRIVATE``-style pattern handed to the
dependency importer, and ``# gazelle:exclude`` / ``# gazelle:follow``
directives read by the directory walker.  Both are written for Go tooling, so
``fnmatch`` is not a fit: ``*`` must stop at ``/`` and malformed patterns must
be reported rather than silently matched literally.
"""

from __future__ import annotations

import functools
import re


class BadPatternError(ValueError):
    """Raised when a glob pattern is syntactically malformed."""


def _take_escaped(pattern: str, i: int) -> tuple[str, int]:
    """Read one (possibly ``\\``-escaped) character of a character class."""
    n = len(pattern)
    if i >= n or pattern[i] in "-]":
        msg = f"syntax error in pattern: {pattern!r}"
        raise BadPatternError(msg)
    if pattern[i] == "\\":
        i += 1
        if i >= n:
            msg = f"syntax error in pattern: {pattern!r}"
            raise BadPatternError(msg)
    ch = pattern[i]
    i += 1
    if i >= n:
        # The class was never closed.
        msg = f"syntax error in pattern: {pattern!r}"
        raise BadPatternError(msg)
    return ch, i


def _translate_class(pattern: str, i: int) -> tuple[str, int]:
    """Translate the class starting after ``[``; return (regex, next index)."""
    negated = i < len(pattern) and pattern[i] == "^"
    if negated:
        i += 1

    ranges: list[str] = []
    nrange = 0
    while True:
        if i < len(pattern) and pattern[i] == "]" and nrange > 0:
            i += 1
            break
        lo, i = _take_escaped(pattern, i)
        hi = lo
        if pattern[i] == "-":
            hi, i = _take_escaped(pattern, i + 1)
        nrange += 1
        if lo > hi:
            # Valid syntax but an empty range.
            continue
        if lo == hi:
            ranges.append(re.escape(lo))
        else:
            ranges.append(f"{re.escape(lo)}-{re.escape(hi)}")

    if not ranges:
        return ("." if negated else "(?!)"), i
    body = "".join(ranges)
    return (f"[^{body}]" if negated else f"[{body}]"), i


@functools.lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            parts.append("[^/]*")
            i += 1
        elif ch == "?":
            parts.append("[^/]")
            i += 1
        elif ch == "\\":
            if i + 1 >= n:
                msg = f"syntax error in pattern: {pattern!r}"
                raise BadPatternError(msg)
            parts.append(re.escape(pattern[i + 1]))
            i += 2
        elif ch == "[":
            regex, i = _translate_class(pattern, i + 1)
            parts.append(regex)
        else:
            parts.append(re.escape(ch))
            i += 1
    return re.compile("".join(parts), re.DOTALL)


def path_match(pattern: str, name: str) -> bool:
    """Report whether *name* matches the shell *pattern*.

    ``*`` matches any run of non-``/`` characters, ``?`` matches one non-``/``
    character, ``[...]`` is a character class (``^`` negates) and ``\\``
    escapes the next character.  The whole of *name* must match.

    Raises
    ------
    BadPatternError
        If *pattern* is malformed, regardless of *name*.
    """
    return _compile(pattern).fullmatch(name) is not None


def match_rel_path(pattern: str, rel: str) -> bool:
    """Match a slash-separated relative path, allowing ``**`` segments.

    A ``**`` segment matches zero or more whole path segments; every other
    segment is matched with :func:`path_match`.
    """
    pat_parts = [p for p in pattern.split("/") if p not in ("", ".")]
    rel_parts = [p for p in rel.split("/") if p not in ("", ".")]
    return _match_parts(tuple(pat_parts), tuple(rel_parts))


def _match_parts(pat: tuple[str, ...], parts: tuple[str, ...]) -> bool:
    if not pat:
        return not parts
    head, rest = pat[0], pat[1:]
    if head == "**":
        return any(_match_parts(rest, parts[k:]) for k in range(len(parts) + 1))
    if not parts:
        return False
    return path_match(head, parts[0]) and _match_parts(rest, parts[1:])
