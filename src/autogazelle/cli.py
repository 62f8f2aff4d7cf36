"""autogazelle CLI entry points.

``autogazelle`` is meant to be called from a bazel wrapper script, which sets
``BUILD_WORKSPACE_DIRECTORY`` and ``BAZEL_REAL``.  Without ``-server`` it asks a
running server to bring build files up to date and waits for it to finish.

``autogazelle-repos`` converts a ``Gopkg.lock`` into ``go_repository`` rules.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from autogazelle import PROGRAM_NAME, __version__
from autogazelle.logs import configure_logging

logger = logging.getLogger(__name__)

_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.command(context_settings=_CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name=PROGRAM_NAME)
@click.option(
    "--server",
    "-server",
    "is_server",
    is_flag=True,
    help="Run as the server instead of the client.",
)
@click.option(
    "--gazelle",
    "-gazelle",
    "gazelle_label",
    default=None,
    help="Label of the gazelle target to invoke with 'bazel run' (required).",
)
@click.option(
    "--timeout",
    "-timeout",
    default=None,
    help="How long the server waits for a client before quitting (default: 1h).",
)
@click.option(
    "--socket",
    "-socket",
    "socket_path",
    default=None,
    help="UNIX socket path, relative to the workspace root (default: tools/autogazelle.socket).",
)
@click.option(
    "--log",
    "-log",
    "log_path",
    default=None,
    help="Server log file, relative to the workspace root (default: tools/autogazelle.log).",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging.")
def main(
    *,
    is_server: bool,
    gazelle_label: str | None,
    timeout: str | None,
    socket_path: str | None,
    log_path: str | None,
    verbose: bool,
) -> None:
    """Keep Bazel build files up to date with a background gazelle server."""
    from autogazelle.config import ConfigError, load_daemon_config
    from autogazelle.daemon import ClientError, DaemonServer, ServerError, signal_server

    configure_logging(verbose=verbose)
    try:
        config = load_daemon_config(
            gazelle_label=gazelle_label,
            timeout=timeout,
            socket_path=socket_path,
            log_path=log_path,
        )
        if is_server:
            configure_logging(config.log_path, verbose=verbose)
            DaemonServer(config).serve()
        else:
            signal_server(config.socket_path)
    except (ConfigError, ServerError, ClientError, OSError) as exc:
        logger.error("%s", exc)
        sys.exit(1)


@click.command(context_settings=_CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name=f"{PROGRAM_NAME}-repos")
@click.option(
    "--from-file",
    "from_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Gopkg.lock manifest to import.",
)
@click.option(
    "--go-proxy",
    default=None,
    help="Module proxy base URL (default: $GOPROXY or https://proxy.golang.org).",
)
@click.option(
    "--go-private",
    default=None,
    help="Glob of import paths fetched from version control instead of the proxy.",
)
@click.option(
    "--to-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write rules to this file instead of stdout.",
)
@click.option(
    "--retry-delay",
    type=click.FloatRange(min=0),
    default=5.0,
    show_default=True,
    help="Seconds between proxy retries.",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging.")
def update_repos(
    *,
    from_file: Path,
    go_proxy: str | None,
    go_private: str | None,
    to_file: Path | None,
    retry_delay: float,
    verbose: bool,
) -> None:
    """Convert a Gopkg.lock into go_repository rules, sorted by name."""
    from rich.console import Console

    from autogazelle.config import ConfigError, load_import_settings
    from autogazelle.repos import (
        ManifestError,
        ResolutionError,
        format_rules,
        import_repos_from_dep,
    )
    from autogazelle.restore import atomic_write

    configure_logging(verbose=verbose)
    console = Console(stderr=True)

    try:
        settings = load_import_settings(go_proxy=go_proxy, go_private=go_private)
        rules = import_repos_from_dep(
            from_file,
            go_proxy=settings.go_proxy,
            go_private=settings.go_private,
            retry_delay=retry_delay,
        )
    except (ConfigError, ManifestError, ResolutionError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    text = format_rules(rules)
    if to_file is None:
        click.echo(text, nl=False)
    else:
        try:
            with atomic_write(to_file) as fh:
                fh.write(text.encode("utf-8"))
        except OSError as exc:
            click.echo(f"Error: cannot write {to_file}: {exc}", err=True)
            sys.exit(1)

    plural = "y" if len(rules) == 1 else "ies"
    target = f" to {to_file}" if to_file is not None else ""
    console.print(f"[green]Imported {len(rules)} repositor{plural}[/green]{target}")
