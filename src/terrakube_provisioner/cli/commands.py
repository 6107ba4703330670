"""CLI command implementations."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal

import typer

from terrakube_provisioner.cli import app
from terrakube_provisioner.cli.errors import handle_error
from terrakube_provisioner.cli.formatting import (
    action_style,
    changes_summary,
    format_apply_summary,
    format_changes,
    format_plan,
    format_plan_summary,
    format_state,
    has_actionable_changes,
    styler,
)

if TYPE_CHECKING:
    from terrakube_provisioner.config.schema import Config
    from terrakube_provisioner.engine.types import ApplyResult, Plan, ResourceChange

DEFAULT_CONFIG = Path("terrakube.yaml")

ConfigPath = Annotated[
    Path,
    typer.Option("--config", "-c", help="Path to the configuration file."),
]

NoColor = Annotated[
    bool,
    typer.Option("--no-color", help="Disable colored output."),
]

AutoApprove = Annotated[
    bool,
    typer.Option("--auto-approve", help="Skip interactive approval."),
]

NoRefresh = Annotated[
    bool,
    typer.Option("--no-refresh", help="Skip refreshing state from Terrakube."),
]


def _use_color(no_color: bool) -> bool:
    return not (no_color or os.environ.get("NO_COLOR"))


def _apply_with_progress(plan_obj: Plan, cfg: Config, *, color: bool) -> ApplyResult:
    """Apply a plan with a Rich progress bar and one status line per resource."""
    from rich.console import Console
    from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

    from terrakube_provisioner.config import apply
    from terrakube_provisioner.engine.types import Action

    console = Console(no_color=not color)
    total = sum(1 for c in plan_obj.changes if c.action != Action.NOOP)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Applying", total=total)

        def on_progress(change: ResourceChange, event: Literal["start", "done"]) -> None:
            s = action_style(change.action)
            if event == "start":
                progress.update(task, description=f"{change.address}: {s.progress_verb}...")
            else:
                progress.console.print(f"  {change.address}: {s.done_verb}")
                progress.advance(task)

        return apply(plan_obj, cfg, progress=on_progress)


def _confirm(message: str, canceled: str) -> None:
    try:
        typer.confirm(message, abort=True)
    except typer.Abort as e:
        typer.echo(canceled, err=True)
        raise typer.Exit(1) from e


def _confirm_and_apply(
    plan_obj: Plan,
    cfg: Config,
    *,
    color: bool,
    auto_approve: bool,
    confirm_msg: str,
    empty_msg: str,
) -> None:
    """Show the plan, ask for approval, apply it, then print the summary."""
    if not has_actionable_changes(plan_obj):
        typer.echo(empty_msg)
        raise typer.Exit(0)

    typer.echo(format_plan(plan_obj, color=color))
    typer.echo()
    typer.echo(format_plan_summary(plan_obj.summary(), color=color))
    typer.echo()

    if not auto_approve:
        _confirm(confirm_msg, "Apply canceled.")

    try:
        result = _apply_with_progress(plan_obj, cfg, color=color)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo()
    typer.echo(format_apply_summary(result.summary(), color=color))


@app.command()
def plan(
    config: ConfigPath = DEFAULT_CONFIG,
    out: Annotated[
        Path | None,
        typer.Option("--out", "-o", help="Save plan to file."),
    ] = None,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Show changes required by the current configuration.

    Exits with code 2 when there are changes to apply.
    """
    from terrakube_provisioner.config import load
    from terrakube_provisioner.config import plan as plan_fn

    color = _use_color(no_color)
    try:
        cfg = load(config)
        plan_obj = plan_fn(cfg, refresh=not no_refresh)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(format_plan(plan_obj, color=color))
    typer.echo()
    typer.echo(format_plan_summary(plan_obj.summary(), color=color))

    if out is not None:
        plan_obj.save(out)
        typer.echo(f"\nPlan saved to {out}")

    if has_actionable_changes(plan_obj):
        raise typer.Exit(2)


@app.command(name="apply")
def apply_cmd(
    plan_file: Annotated[
        Path | None,
        typer.Argument(help="Saved plan file to apply."),
    ] = None,
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
    no_refresh: NoRefresh = False,
) -> None:
    """Apply the changes required by the current configuration."""
    from terrakube_provisioner.config import load
    from terrakube_provisioner.config import plan as plan_fn
    from terrakube_provisioner.engine.types import Plan

    color = _use_color(no_color)
    try:
        cfg = load(config)
        if plan_file is not None:
            plan_obj = Plan.load(plan_file)
        else:
            plan_obj = plan_fn(cfg, refresh=not no_refresh)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    _confirm_and_apply(
        plan_obj,
        cfg,
        color=color,
        auto_approve=auto_approve,
        confirm_msg="Do you want to apply these changes?",
        empty_msg="No changes. Resources are up-to-date.",
    )


@app.command()
def destroy(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Destroy all managed resources."""
    from terrakube_provisioner.config import load
    from terrakube_provisioner.config import plan as plan_fn

    color = _use_color(no_color)
    try:
        cfg = load(config)
        plan_obj = plan_fn(cfg, destroy=True)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    _confirm_and_apply(
        plan_obj,
        cfg,
        color=color,
        auto_approve=auto_approve,
        confirm_msg="Do you really want to destroy all resources?",
        empty_msg="No resources to destroy.",
    )


@app.command(name="refresh")
def refresh_cmd(
    config: ConfigPath = DEFAULT_CONFIG,
    auto_approve: AutoApprove = False,
    no_color: NoColor = False,
) -> None:
    """Refresh state from the live Terrakube API."""
    from terrakube_provisioner.config import load, save_state
    from terrakube_provisioner.config import refresh as refresh_fn

    color = _use_color(no_color)
    try:
        cfg = load(config)
        changes, state = refresh_fn(cfg)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    if not changes:
        typer.echo("No changes. State is up-to-date with Terrakube.")
        raise typer.Exit(0)

    typer.echo(format_changes(changes, color=color))
    typer.echo()
    typer.echo(format_plan_summary(changes_summary(changes), color=color, header="Refresh"))
    typer.echo()

    if not auto_approve:
        _confirm("Do you want to update the state file?", "Refresh canceled.")

    try:
        save_state(cfg, state)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc
    count = len(state.resources)
    typer.echo(f"State refreshed. {count} resource{'s' if count != 1 else ''} tracked.")


@app.command()
def drift(
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Show drift between state and the live Terrakube API."""
    from terrakube_provisioner.config import drift as drift_fn
    from terrakube_provisioner.config import load

    color = _use_color(no_color)
    try:
        cfg = load(config)
        changes = drift_fn(cfg)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    if not changes:
        typer.echo("No drift detected. State is up-to-date with Terrakube.")
        raise typer.Exit(0)

    typer.echo("Drift detected:\n")
    typer.echo(format_changes(changes, color=color))


@app.command(name="import")
def import_cmd(
    address: Annotated[str, typer.Argument(help="Resource address, e.g. terrakube_team.ops.")],
    resource_id: Annotated[
        str, typer.Argument(metavar="ID", help="Import identifier, e.g. ORG_ID,TEAM_ID.")
    ],
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Bring an existing Terrakube object under management."""
    from terrakube_provisioner.config import import_resource, load

    color = _use_color(no_color)
    try:
        cfg = load(config)
        inst = import_resource(cfg, address, resource_id)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(styler(color)(f"Imported {inst.address} (id={inst.resource_id}).", fg="green"))


@app.command()
def show(
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """List the resources recorded in the state file."""
    from terrakube_provisioner.config import load, load_state

    color = _use_color(no_color)
    try:
        cfg = load(config)
        state = load_state(cfg)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    if state is None:
        typer.echo(f"No state file at {cfg.state_path}.")
        return
    typer.echo(format_state(state))


@app.command()
def validate(
    config: ConfigPath = DEFAULT_CONFIG,
    no_color: NoColor = False,
) -> None:
    """Validate the configuration file."""
    from terrakube_provisioner.config import load
    from terrakube_provisioner.config import plan as plan_fn

    color = _use_color(no_color)
    try:
        cfg = load(config)
        plan_fn(cfg, refresh=False)
    except Exception as exc:
        raise typer.Exit(handle_error(exc, color=color)) from exc

    typer.echo(styler(color)("Configuration is valid.", fg="green"))
