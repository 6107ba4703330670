"""Terraform-style rendering of plans, drift and apply results."""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING, Any, NamedTuple

import typer

from terrakube_provisioner.config.registry import default_registry
from terrakube_provisioner.engine.references import KNOWN_AFTER_APPLY
from terrakube_provisioner.engine.types import Action

if TYPE_CHECKING:
    from collections.abc import Callable

    from terrakube_provisioner.core.state import State
    from terrakube_provisioner.engine.types import Plan, ResourceChange
    from terrakube_provisioner.resources.base import Resource


class _ActionStyle(NamedTuple):
    color: str
    symbol: str
    desc: str
    progress_verb: str
    done_verb: str


_ACTION_STYLES: dict[Action, _ActionStyle] = {
    Action.CREATE: _ActionStyle("green", "+", "will be created", "Creating", "Creation complete"),
    Action.UPDATE: _ActionStyle(
        "yellow", "~", "will be updated in-place", "Modifying", "Modifications complete"
    ),
    Action.REPLACE: _ActionStyle(
        "magenta", "-/+", "must be replaced", "Replacing", "Replacement complete"
    ),
    Action.DELETE: _ActionStyle("red", "-", "will be destroyed", "Destroying", "Destroy complete"),
    Action.NOOP: _ActionStyle("bright_black", " ", "is up-to-date", "", ""),
}

# (action, plan verb, apply verb, summary color)
_SUMMARY_COLUMNS = (
    (Action.CREATE, "to add", "added", "green"),
    (Action.UPDATE, "to change", "changed", "yellow"),
    (Action.REPLACE, "to replace", "replaced", "magenta"),
    (Action.DELETE, "to destroy", "destroyed", "red"),
)

# Marks an attribute whose change forces replacement.
_FORCES_REPLACEMENT = "# forces replacement"
_SENSITIVE_VALUE = "(sensitive value)"


def action_style(action: Action) -> _ActionStyle:
    return _ACTION_STYLES[action]


def styler(color: bool) -> Callable[..., str]:
    """Return ``typer.style`` when *color* is True, otherwise a passthrough."""
    if color:
        return typer.style
    return lambda text, **_kw: text


def has_actionable_changes(plan: Plan) -> bool:
    return any(c.action != Action.NOOP for c in plan.changes)


def _format_value(value: Any) -> str:
    if value == KNOWN_AFTER_APPLY:
        return value
    if isinstance(value, str):
        return f'"{value}"'
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@functools.cache
def _resource_models() -> dict[str, type[Resource]]:
    registry = default_registry()
    return {t: registry.get(t).model for t in registry.resource_types()}


def _hidden_fields(change: ResourceChange) -> set[str]:
    """Attributes of *change* whose values are secret."""
    model = _resource_models().get(change.resource_type)
    if model is None:
        return set()
    return model.sensitive_attributes(*(r for r in (change.planned, change.prior) if r))


def _change_attrs(change: ResourceChange) -> dict[str, str]:
    """Displayable ``key -> formatted value`` pairs for a change block."""
    hidden = _hidden_fields(change)

    def fmt(key: str, value: Any) -> str:
        if key in hidden and value not in (None, KNOWN_AFTER_APPLY):
            return _SENSITIVE_VALUE
        return _format_value(value)

    if change.action == Action.CREATE and change.planned:
        return {k: fmt(k, v) for k, v in sorted(change.planned.items())}
    if change.action in (Action.UPDATE, Action.REPLACE) and change.diff:
        forced = set(change.replace_fields or ())
        attrs = {}
        for key, d in sorted(change.diff.items()):
            line = f"{fmt(key, d['from'])} -> {fmt(key, d['to'])}"
            attrs[key] = f"{line} {_FORCES_REPLACEMENT}" if key in forced else line
        return attrs
    if change.action == Action.DELETE and change.prior and "id" in change.prior:
        return {"id": _format_value(change.prior["id"])}
    return {}


def format_change(change: ResourceChange, *, color: bool = True) -> str:
    """Render one change as a diff block."""
    style = styler(color)
    s = _ACTION_STYLES[change.action]
    fg = {"fg": s.color}

    label = change.address.rsplit(".", 1)[-1]
    attrs = _change_attrs(change)
    width = max((len(k) for k in attrs), default=0)

    lines = [style(f"  # {change.address} {s.desc}", bold=True, **fg)]
    lines.append(style(f'  {s.symbol} resource "{change.resource_type}" "{label}" {{', **fg))
    lines.extend(
        style(f"      {s.symbol} {k.ljust(width)} = {v}", **fg) for k, v in attrs.items()
    )
    lines.append(style("    }", **fg))
    return "\n".join(lines)


def format_changes(changes: list[ResourceChange], *, color: bool = True) -> str:
    blocks = [format_change(c, color=color) for c in changes if c.action != Action.NOOP]
    if not blocks:
        return "No changes. Resources are up-to-date."
    return "\n\n".join(blocks)


def format_plan(plan: Plan, *, color: bool = True) -> str:
    return format_changes(plan.changes, color=color)


def format_state(state: State) -> str:
    """List managed resources with their remote ids."""
    if not state.resources:
        return "No resources are managed."
    width = max(len(a) for a in state.resources)
    return "\n".join(
        f"{addr.ljust(width)}  id={inst.resource_id}"
        for addr, inst in sorted(state.resources.items())
    )


# ── Summaries ──────────────────────────────────────────────────────


def changes_summary(changes: list[ResourceChange]) -> dict[str, int]:
    """Count actionable changes per action value."""
    summary = {action.value: 0 for action, *_ in _SUMMARY_COLUMNS}
    for c in changes:
        if c.action != Action.NOOP:
            summary[c.action.value] += 1
    return summary


def _summary_parts(summary: dict[str, int], *, apply: bool, color: bool) -> str:
    style = styler(color)
    parts = []
    for action, plan_verb, apply_verb, fg in _SUMMARY_COLUMNS:
        n = summary.get(action.value, 0)
        # Replacements are only listed when there are some.
        if action == Action.REPLACE and not n:
            continue
        text = f"{n} {apply_verb if apply else plan_verb}"
        parts.append(style(text, fg=fg) if n else text)
    return ", ".join(parts)


def format_plan_summary(
    summary: dict[str, int], *, color: bool = True, header: str = "Plan"
) -> str:
    """Render ``Plan: 2 to add, 1 to change, 0 to destroy.``"""
    return f"{header}: {_summary_parts(summary, apply=False, color=color)}."


def format_apply_summary(summary: dict[str, int], *, color: bool = True) -> str:
    """Render ``Apply complete! Resources: 2 added, 0 changed, 0 destroyed.``"""
    done = styler(color)("Apply complete!", fg="green", bold=True)
    return f"{done} Resources: {_summary_parts(summary, apply=True, color=color)}."
