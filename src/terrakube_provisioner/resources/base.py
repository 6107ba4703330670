"""Base classes for Terrakube resources and data sources."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, computed_field

from terrakube_provisioner.resources.markers import path_key_fields, sensitive_fields


@dataclass(frozen=True)
class ApiDescriptor:
    """How a resource type maps onto the Terrakube REST API.

    ``collection_path`` and ``member_path`` are templates filled from the
    resource's ``PathKey`` fields plus ``id``; ``member_path`` defaults to
    ``<collection_path>/{id}``.

    ``soft_delete`` replaces the DELETE request with a PATCH whose attributes
    it computes from the stored attributes; with ``soft_delete_full`` the
    PATCH also resends the stored record and the constants. ``constants`` are
    wire attributes sent on every create and update; ``computed`` maps stored
    attribute names to read-only wire attributes. ``sensitive`` names stored
    attributes that are secret but are not model fields.
    """

    wire_type: str
    collection_path: str
    member_path: str | None = None
    import_keys: tuple[str, ...] = ("organization_id", "id")
    delete_status: int | None = None
    soft_delete: Callable[[Mapping[str, Any]], dict[str, Any]] | None = None
    soft_delete_full: bool = False
    constants: Mapping[str, Any] = field(default_factory=dict)
    computed: Mapping[str, str] = field(default_factory=dict)
    updatable: bool = True
    sensitive: tuple[str, ...] = ()

    def collection_url(self, keys: Mapping[str, Any]) -> str:
        return self.collection_path.format(**keys)

    def member_url(self, keys: Mapping[str, Any]) -> str:
        template = self.member_path or f"{self.collection_path}/{{id}}"
        return template.format(**keys)


class Resource(BaseModel):
    """Base class for all Terrakube resources.

    Resources are pure data - they define the desired state.
    Handlers know how to CRUD resources.
    """

    model_config = ConfigDict(extra="forbid")

    resource_type: ClassVar[str]
    api: ClassVar[ApiDescriptor]
    plan_priority: ClassVar[int] = 100

    label: str = Field(pattern=r"^[a-zA-Z_][a-zA-Z0-9_-]*$")

    # Lifecycle
    depends_on: list[str] = []

    @computed_field
    @property
    def address(self) -> str:
        """Unique address for this resource (e.g., 'terrakube_organization.main')."""
        return f"{self.resource_type}.{self.label}"

    def path_keys(self) -> dict[str, Any]:
        """Values of the fields that appear in the URL path."""
        return {name: getattr(self, name) for name in path_key_fields(self)}

    @classmethod
    def sensitive_attributes(cls, *records: Mapping[str, Any]) -> set[str]:
        """Stored attributes to hide when displaying *records* of this type."""
        return sensitive_fields(cls, *records) | set(cls.api.sensitive)


@dataclass(frozen=True)
class LookupDescriptor:
    """How a data source finds its object: a name filter on a collection."""

    wire_type: str
    collection_path: str
    outputs: Mapping[str, str] = field(default_factory=dict)
    quote_name: bool = False

    def filter_params(self, name: str) -> dict[str, str]:
        value = f"'{name}'" if self.quote_name else name
        return {f"filter[{self.wire_type}]": f"name=={value}"}


class DataSource(BaseModel):
    """Base class for read-only lookups of existing Terrakube objects."""

    model_config = ConfigDict(extra="forbid")

    data_type: ClassVar[str]
    lookup: ClassVar[LookupDescriptor]

    label: str = Field(pattern=r"^[a-zA-Z_][a-zA-Z0-9_-]*$")
    name: str

    @computed_field
    @property
    def address(self) -> str:
        return f"data.{self.data_type}.{self.label}"
