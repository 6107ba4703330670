"""Command-line interface for terrakube-provisioner."""

from __future__ import annotations

import logging
import os
import sys

import typer

from terrakube_provisioner import __version__

app = typer.Typer(
    name="terrakube-provisioner",
    no_args_is_help=True,
    add_completion=False,
)

_LOG_ENV = "TERRAKUBE_LOG"
_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"terrakube-provisioner {__version__}")
        raise typer.Exit


def _log_level(verbose: int) -> int | None:
    """Level requested through ``TERRAKUBE_LOG`` or ``-v`` flags, if any."""
    requested = os.environ.get(_LOG_ENV, "").strip().upper()
    if requested:
        if requested not in _LEVELS:
            typer.echo(
                f"WARNING: ignoring {_LOG_ENV}={requested!r}; "
                f"expected one of {', '.join(_LEVELS)}. Using INFO.",
                err=True,
            )
            return logging.INFO
        return logging.getLevelName(requested)
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return None


def _configure_logging(verbose: int) -> None:
    """Route package logs to stderr; stays silent unless asked otherwise."""
    level = _log_level(verbose)
    if level is None:
        return
    logging.basicConfig(level=logging.WARNING, format=_LOG_FORMAT, stream=sys.stderr, force=True)
    logging.getLogger("terrakube_provisioner").setLevel(level)


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase log verbosity (-v info, -vv debug).",
    ),
) -> None:
    """Declarative provisioning of Terrakube organizations, workspaces and friends."""
    _ = version
    _configure_logging(verbose)


# Commands attach themselves to ``app`` on import.
from terrakube_provisioner.cli import commands as _commands  # noqa: E402, F401
