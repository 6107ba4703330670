"""Apply operations.

Apply executes a graph of operations: one node per changed resource, plus a
barrier that keeps creates and updates ahead of deletes. Each operation knows
how to apply itself and lists the operations it must wait for.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from terrakube_provisioner.core.state import ResourceInstance, State, compute_attributes_hash
from terrakube_provisioner.engine.references import resolve_references

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from terrakube_provisioner.engine.handlers import EngineContext
    from terrakube_provisioner.engine.registry import ResourceTypeRegistry
    from terrakube_provisioner.engine.types import ResourceChange
    from terrakube_provisioner.resources.base import Resource


class Operation(Protocol):
    key: str
    deps: list[str]
    change: ResourceChange | None

    def run(
        self,
        *,
        ctx: EngineContext,
        state: State,
        registry: ResourceTypeRegistry,
        data: Mapping[str, dict[str, Any]],
        checkpoint: Callable[[], None],
    ) -> bool:
        """Execute this operation.

        ``data`` holds the data source results recorded in the plan.
        ``checkpoint`` persists state mid-operation.

        Returns:
            True if state should be persisted (serial bump + write).
        """


@dataclass
class BarrierOperation:
    """A no-op node used to enforce ordering between operation phases."""

    key: str
    deps: list[str] = field(default_factory=list)
    change: ResourceChange | None = None

    def run(self, **_: Any) -> bool:
        return False


def reference_values(
    state: State, data: Mapping[str, dict[str, Any]]
) -> dict[str, dict[str, Any]]:
    """Everything a ``${...}`` reference can point at right now."""
    values = {addr: inst.attributes for addr, inst in state.resources.items()}
    values.update(data)
    return values


def _desired_object(
    change: ResourceChange,
    model: type[Resource],
    values: Mapping[str, Mapping[str, Any]],
    *,
    action: str,
) -> Resource:
    if change.desired is None:
        raise ValueError(f"Missing desired config for {action}: {change.address}")

    resolved = resolve_references(change.desired, values, strict=True)
    desired_obj = model.model_validate(resolved)
    if desired_obj.address != change.address:
        raise ValueError(
            f"Desired address mismatch for {action}: {change.address} != {desired_obj.address}"
        )
    return desired_obj


def _record(state: State, address: str, desired_obj: Resource, attrs: dict[str, Any]) -> None:
    now = datetime.now(UTC)
    state.resources[address] = ResourceInstance(
        address=address,
        resource_type=desired_obj.resource_type,
        label=desired_obj.label,
        attributes=attrs,
        attributes_hash=compute_attributes_hash(attrs),
        dependencies=list(desired_obj.depends_on),
        created_at=now,
        updated_at=now,
    )


@dataclass
class CreateOperation:
    key: str
    change: ResourceChange | None
    deps: list[str] = field(default_factory=list)

    def run(
        self,
        *,
        ctx: EngineContext,
        state: State,
        registry: ResourceTypeRegistry,
        data: Mapping[str, dict[str, Any]],
        **_: Any,
    ) -> bool:
        assert self.change is not None
        reg = registry.get(self.change.resource_type)
        desired_obj = _desired_object(
            self.change, reg.model, reference_values(state, data), action="create"
        )

        attrs = reg.handler.create(ctx, desired_obj)
        _record(state, self.change.address, desired_obj, attrs)
        return True


@dataclass
class UpdateOperation:
    key: str
    change: ResourceChange | None
    deps: list[str] = field(default_factory=list)

    def run(
        self,
        *,
        ctx: EngineContext,
        state: State,
        registry: ResourceTypeRegistry,
        data: Mapping[str, dict[str, Any]],
        **_: Any,
    ) -> bool:
        assert self.change is not None
        reg = registry.get(self.change.resource_type)
        desired_obj = _desired_object(
            self.change, reg.model, reference_values(state, data), action="update"
        )

        prior_inst = state.resources[self.change.address]
        attrs = reg.handler.update(ctx, desired_obj, prior_inst)

        prior_inst.attributes = attrs
        prior_inst.attributes_hash = compute_attributes_hash(attrs)
        prior_inst.dependencies = list(desired_obj.depends_on)
        prior_inst.updated_at = datetime.now(UTC)
        return True


@dataclass
class ReplaceOperation:
    """Delete the remote object, then create it again from the desired config.

    State is persisted between the two steps, so a failed create leaves the
    resource planned for creation rather than pointing at a deleted object.
    """

    key: str
    change: ResourceChange | None
    deps: list[str] = field(default_factory=list)

    def run(
        self,
        *,
        ctx: EngineContext,
        state: State,
        registry: ResourceTypeRegistry,
        data: Mapping[str, dict[str, Any]],
        checkpoint: Callable[[], None],
    ) -> bool:
        assert self.change is not None
        reg = registry.get(self.change.resource_type)
        prior_inst = state.resources[self.change.address]

        desired_obj = _desired_object(
            self.change, reg.model, reference_values(state, data), action="replace"
        )

        reg.handler.delete(ctx, prior_inst)
        del state.resources[self.change.address]
        checkpoint()

        attrs = reg.handler.create(ctx, desired_obj)
        _record(state, self.change.address, desired_obj, attrs)
        return True


@dataclass
class DeleteOperation:
    key: str
    change: ResourceChange | None
    deps: list[str] = field(default_factory=list)

    def run(
        self, *, ctx: EngineContext, state: State, registry: ResourceTypeRegistry, **_: Any
    ) -> bool:
        assert self.change is not None
        reg = registry.get(self.change.resource_type)

        prior_inst = state.resources[self.change.address]
        reg.handler.delete(ctx, prior_inst)
        del state.resources[self.change.address]
        return True
