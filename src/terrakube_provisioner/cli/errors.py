"""Turn exceptions into one-line stderr messages and exit codes."""

from __future__ import annotations

import typer

from terrakube_provisioner.config.loader import ConfigError
from terrakube_provisioner.core.errors import ImportIdError, TerrakubeError
from terrakube_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    ResourceImportError,
    StalePlanError,
    StateEndpointMismatchError,
    StateLockError,
    ValidationError,
)

_PARTIAL_VERBS = (
    ("create", "added"),
    ("update", "changed"),
    ("replace", "replaced"),
    ("delete", "destroyed"),
)


def _err(msg: str, *, fg: str | None) -> None:
    typer.echo(typer.style(msg, fg=fg), err=True)


def _partial_summary(exc: ApplyError) -> str | None:
    counts = exc.result.summary()
    parts = [f"{counts[action]} {verb}" for action, verb in _PARTIAL_VERBS if counts[action]]
    return ", ".join(parts) or None


def handle_error(exc: Exception, *, color: bool = True) -> int:
    """Print a clean error message to stderr and return an exit code.

    Every error maps to exit code 1; tracebacks are never shown.
    """
    fg = typer.colors.RED if color else None

    if isinstance(exc, ConfigError):
        _err(f"Configuration error: {exc}", fg=fg)
    elif isinstance(exc, ValidationError):
        _err("Validation failed:", fg=fg)
        for e in exc.errors:
            _err(f"  - {e}", fg=fg)
    elif isinstance(exc, StalePlanError):
        _err(f"Plan is stale: {exc}", fg=fg)
    elif isinstance(exc, StateEndpointMismatchError):
        _err(f"State mismatch: {exc}", fg=fg)
    elif isinstance(exc, StateLockError):
        _err(f"State is locked: {exc}", fg=fg)
    elif isinstance(exc, (ImportIdError, ResourceImportError)):
        _err(f"Import failed: {exc}", fg=fg)
    elif isinstance(exc, ApplyError):
        _err(f"Apply failed: {exc}", fg=fg)
        partial = _partial_summary(exc)
        if partial:
            _err(f"  Partial result: {partial}.", fg=fg)
    elif isinstance(exc, ApplyCanceled):
        _err("Apply canceled.", fg=fg)
    elif isinstance(exc, TerrakubeError):
        _err(f"Terrakube API error: {exc}", fg=fg)
    else:
        _err(f"Error: {exc}", fg=fg)

    return 1
