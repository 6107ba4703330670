"""YAML configuration loading and convenience plan/apply API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from terrakube_provisioner.config.loader import ConfigError, load_config
from terrakube_provisioner.config.registry import default_registry
from terrakube_provisioner.config.schema import Config, ProviderConfig
from terrakube_provisioner.core.provider import TerrakubeProvider
from terrakube_provisioner.core.state import State
from terrakube_provisioner.engine.engine import ProgressCallback, TerrakubeEngine
from terrakube_provisioner.engine.lock import StateLock
from terrakube_provisioner.engine.types import Action, ResourceChange

if TYPE_CHECKING:
    from pathlib import Path

    from terrakube_provisioner.core.state import ResourceInstance
    from terrakube_provisioner.engine.types import ApplyResult, Plan

__all__ = [
    "Config",
    "ConfigError",
    "ProviderConfig",
    "State",
    "apply",
    "drift",
    "import_resource",
    "load",
    "load_config",
    "load_state",
    "plan",
    "plan_and_apply",
    "refresh",
    "save_state",
]


def load(path: Path | str) -> Config:
    """Load a YAML configuration file."""
    return load_config(path)


def _engine_from_config(config: Config) -> TerrakubeEngine:
    """Build a ``TerrakubeEngine`` from a ``Config`` instance."""
    settings = config.provider
    if not settings.endpoint:
        raise ConfigError(
            "Missing Terrakube API Host (set provider.endpoint or TERRAKUBE_ENDPOINT)"
        )
    if settings.token is None or not settings.token.get_secret_value():
        raise ConfigError("Missing Terrakube API Token (set TERRAKUBE_TOKEN)")
    provider = TerrakubeProvider(
        endpoint=settings.endpoint,
        token=settings.token,
        insecure_http_client=settings.insecure_http_client,
    )
    return TerrakubeEngine(
        provider=provider,
        endpoint=settings.endpoint,
        state_path=config.state_path,
        registry=default_registry(),
    )


def plan(config: Config, *, destroy: bool = False, refresh: bool = True) -> Plan:
    """Plan changes for the given configuration."""
    engine = _engine_from_config(config)
    return engine.plan(
        config.resource_list,
        data_sources=config.data_sources,
        destroy=destroy,
        refresh=refresh,
    )


def apply(
    plan_obj: Plan, config: Config, *, progress: ProgressCallback | None = None
) -> ApplyResult:
    """Apply a previously computed plan."""
    engine = _engine_from_config(config)
    return engine.apply(plan_obj, progress=progress)


def plan_and_apply(config: Config, *, destroy: bool = False, refresh: bool = True) -> ApplyResult:
    """Plan and apply in one step."""
    plan_obj = plan(config, destroy=destroy, refresh=refresh)
    return apply(plan_obj, config)


def refresh(config: Config) -> tuple[list[ResourceChange], State]:
    """Refresh state from the live Terrakube API (not persisted).

    Returns the list of drift changes and the new state. Call
    :func:`save_state` to persist the returned state to disk.
    """
    engine = _engine_from_config(config)
    old_state, new_state = engine.refresh()
    return _build_drift_changes(old_state, new_state), new_state


def save_state(config: Config, state: State) -> None:
    """Persist state to disk."""
    with StateLock(config.state_path):
        state.serial += 1
        state.save(config.state_path)


def drift(config: Config) -> list[ResourceChange]:
    """Detect drift between state file and live Terrakube."""
    changes, _ = refresh(config)
    return changes


def import_resource(config: Config, address: str, raw_id: str) -> ResourceInstance:
    """Adopt an existing remote object into state at *address*."""
    engine = _engine_from_config(config)
    return engine.import_resource(address, raw_id)


def load_state(config: Config) -> State | None:
    """Read the state file without contacting the API; ``None`` if absent."""
    if not config.state_path.exists():
        return None
    return State.load(config.state_path)


def _build_drift_changes(old_state: State, new_state: State) -> list[ResourceChange]:
    """Compare old vs new state and return a list of drift changes."""
    changes: list[ResourceChange] = []
    for addr, inst in new_state.resources.items():
        prior = old_state.resources.get(addr)
        if prior is None or prior.attributes == inst.attributes:
            continue
        old, new = prior.attributes, inst.attributes
        diff = {
            k: {"from": old.get(k), "to": new.get(k)}
            for k in sorted(set(old) | set(new))
            if old.get(k) != new.get(k)
        }
        changes.append(
            ResourceChange(
                address=addr,
                resource_type=inst.resource_type,
                action=Action.UPDATE,
                prior=dict(old),
                planned=dict(new),
                diff=diff,
            )
        )
    for addr in sorted(set(old_state.resources) - set(new_state.resources)):
        inst = old_state.resources[addr]
        changes.append(
            ResourceChange(
                address=addr,
                resource_type=inst.resource_type,
                action=Action.DELETE,
                prior=dict(inst.attributes),
            )
        )
    return changes
