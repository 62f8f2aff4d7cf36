"""Shared test fixtures for autogazelle."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from autogazelle import PROGRAM_NAME

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    """Drop handlers installed by CLI invocations so later tests log normally."""
    yield
    logger = logging.getLogger(PROGRAM_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    """Create a small Bazel workspace with templates and Go sources."""
    (tmp_path / "WORKSPACE").write_text("", encoding="utf-8")
    (tmp_path / "BUILD.bazel.in").write_text('exports_files(["WORKSPACE"])\n', encoding="utf-8")

    pkg = tmp_path / "pkg"
    pkg.mkdir()
    (pkg / "lib.go").write_text("package pkg\n", encoding="utf-8")

    cmd = tmp_path / "cmd" / "tool"
    cmd.mkdir(parents=True)
    (cmd / "main.go").write_text("package main\n", encoding="utf-8")
    template = 'load("@io_bazel_rules_go//go:def.bzl", "go_binary")\n'
    (cmd / "BUILD.in").write_text(template, encoding="utf-8")
    return tmp_path


@pytest.fixture()
def short_tmp() -> Iterator[Path]:
    """A temporary directory with a short path, for UNIX socket addresses."""
    path = Path(tempfile.mkdtemp(prefix="ag-"))
    yield path
    shutil.rmtree(path, ignore_errors=True)
