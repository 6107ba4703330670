"""Variable resource models (organization, workspace and collection scoped)."""

from __future__ import annotations

from typing import Annotated, ClassVar, Literal

from terrakube_provisioner.resources.base import ApiDescriptor, Resource
from terrakube_provisioner.resources.markers import Attr, ForceNew, PathKey

Category = Literal["TERRAFORM", "ENV"]


class VariableResource(Resource):
    """Fields shared by every variable-like resource.

    When ``sensitive`` is true the API withholds ``value`` on read, so the
    configured value is kept in state.
    """

    key: Annotated[str, Attr("key")]
    value: Annotated[str, Attr("value", sensitive_if="sensitive")]
    description: Annotated[str, Attr("description")] = ""
    category: Annotated[Category, Attr("category")] = "TERRAFORM"
    sensitive: Annotated[bool, Attr("sensitive")] = False
    hcl: Annotated[bool, Attr("hcl")] = False


class OrganizationVariableResource(VariableResource):
    resource_type: ClassVar[str] = "terrakube_organization_variable"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="globalvar",
        collection_path="/api/v1/organization/{organization_id}/globalvar",
    )

    organization_id: Annotated[str, PathKey(), ForceNew()]


class WorkspaceVariableResource(VariableResource):
    resource_type: ClassVar[str] = "terrakube_workspace_variable"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="variable",
        collection_path=(
            "/api/v1/organization/{organization_id}/workspace/{workspace_id}/variable"
        ),
        import_keys=("organization_id", "workspace_id", "id"),
    )

    organization_id: Annotated[str, PathKey(), ForceNew()]
    workspace_id: Annotated[str, PathKey(), ForceNew()]


class CollectionItemResource(VariableResource):
    resource_type: ClassVar[str] = "terrakube_collection_item"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="item",
        collection_path="/api/v1/organization/{organization_id}/collection/{collection_id}/item",
        import_keys=("organization_id", "collection_id", "id"),
        delete_status=204,
    )

    organization_id: Annotated[str, PathKey(), ForceNew()]
    collection_id: Annotated[str, PathKey(), ForceNew()]
