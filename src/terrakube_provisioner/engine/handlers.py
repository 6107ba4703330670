"""Engine-facing handler interfaces."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from terrakube_provisioner.resources.base import Resource

if TYPE_CHECKING:
    from collections.abc import Mapping

    from terrakube_provisioner.core import TerrakubeProvider
    from terrakube_provisioner.core.state import ResourceInstance, State
    from terrakube_provisioner.core.transport import TerrakubeClient
    from terrakube_provisioner.resources.base import DataSource

R = TypeVar("R", bound=Resource)


@dataclass(frozen=True)
class EngineContext:
    """Context passed to handlers."""

    provider: TerrakubeProvider

    @property
    def client(self) -> TerrakubeClient:
        return self.provider.client


class PlanContext:
    """Merged view of desired resources, data sources and state for plan-level validation.

    Lookups are by address; desired objects take precedence over state.
    """

    def __init__(
        self,
        all_desired: Mapping[str, Resource],
        state: State,
        data_sources: Mapping[str, DataSource] | None = None,
    ) -> None:
        data_sources = data_sources or {}
        self._wire_types: dict[str, str] = {}
        for addr, d in data_sources.items():
            self._wire_types[addr] = d.lookup.wire_type
        for addr, r in all_desired.items():
            self._wire_types[addr] = r.api.wire_type
        self._all_addresses: set[str] = (
            set(all_desired) | set(data_sources) | set(state.resources)
        )

    def address_exists(self, address: str) -> bool:
        """Check if an address exists in desired, data sources or state."""
        return address in self._all_addresses

    def wire_type(self, address: str) -> str | None:
        """API type of a configured object, or ``None`` if only known from state."""
        return self._wire_types.get(address)


class ResourceHandler(Generic[R]):
    """Base class for resource handlers.

    Handlers are responsible for translating resources into Terrakube API calls.
    Subclass and override the CRUD methods. Validation methods are optional.

    ``read`` also serves import: the engine seeds a ``ResourceInstance`` with
    the parsed import keys and reads it.
    """

    def validate(self, ctx: EngineContext, desired: R) -> list[str]:
        """Single-resource validation. No cross-resource context needed.

        Return list of error messages (empty = valid).
        """
        _ = ctx, desired
        return []

    def validate_plan(
        self,
        ctx: EngineContext,
        desired: R,
        plan_ctx: PlanContext,
    ) -> list[str]:
        """Cross-resource validation with access to all resources.

        Return list of error messages (empty = valid).
        """
        _ = ctx, desired, plan_ctx
        return []

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        """Read the resource from Terrakube. Return None if it no longer exists."""
        raise NotImplementedError

    def create(self, ctx: EngineContext, desired: R) -> dict[str, Any]:
        """Create the resource in Terrakube. Return stored attributes."""
        raise NotImplementedError

    def update(self, ctx: EngineContext, desired: R, prior: ResourceInstance) -> dict[str, Any]:
        """Update the resource in Terrakube. Return stored attributes."""
        raise NotImplementedError

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        """Delete the resource from Terrakube."""
        raise NotImplementedError
