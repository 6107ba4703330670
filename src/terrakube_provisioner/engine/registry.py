"""Resource and data source type registry for handler dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from terrakube_provisioner.engine.errors import UnknownResourceTypeError

if TYPE_CHECKING:
    from terrakube_provisioner.engine.data_handler import DataSourceHandler
    from terrakube_provisioner.engine.handlers import ResourceHandler
    from terrakube_provisioner.resources.base import DataSource, Resource


@dataclass(frozen=True)
class ResourceTypeRegistration:
    resource_type: str
    model: type[Resource]
    handler: ResourceHandler[Any]


@dataclass(frozen=True)
class DataSourceRegistration:
    data_type: str
    model: type[DataSource]
    handler: DataSourceHandler


class ResourceTypeRegistry:
    """Registry mapping resource_type -> (model, handler), and data_type likewise."""

    def __init__(self) -> None:
        self._registrations: dict[str, ResourceTypeRegistration] = {}
        self._data_registrations: dict[str, DataSourceRegistration] = {}

    def register(self, model: type[Resource], handler: ResourceHandler[Any]) -> None:
        resource_type = getattr(model, "resource_type", None)
        if not isinstance(resource_type, str) or not resource_type:
            raise ValueError("Resource model must define a non-empty classvar `resource_type`")

        if resource_type in self._registrations:
            raise ValueError(f"Resource type already registered: {resource_type}")

        self._registrations[resource_type] = ResourceTypeRegistration(
            resource_type=resource_type,
            model=model,
            handler=handler,
        )

    def register_data(self, model: type[DataSource], handler: DataSourceHandler) -> None:
        data_type = getattr(model, "data_type", None)
        if not isinstance(data_type, str) or not data_type:
            raise ValueError("Data source model must define a non-empty classvar `data_type`")

        if data_type in self._data_registrations:
            raise ValueError(f"Data source type already registered: {data_type}")

        self._data_registrations[data_type] = DataSourceRegistration(
            data_type=data_type,
            model=model,
            handler=handler,
        )

    def get(self, resource_type: str) -> ResourceTypeRegistration:
        try:
            return self._registrations[resource_type]
        except KeyError as e:
            raise UnknownResourceTypeError(resource_type) from e

    def get_data(self, data_type: str) -> DataSourceRegistration:
        try:
            return self._data_registrations[data_type]
        except KeyError as e:
            raise UnknownResourceTypeError(f"data.{data_type}") from e

    def resource_types(self) -> list[str]:
        return sorted(self._registrations)

    def data_types(self) -> list[str]:
        return sorted(self._data_registrations)
