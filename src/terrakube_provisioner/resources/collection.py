"""Variable collections and their workspace references."""

from __future__ import annotations

from typing import Annotated, ClassVar

from terrakube_provisioner.resources.base import ApiDescriptor, Resource
from terrakube_provisioner.resources.markers import Attr, ForceNew, PathKey, Rel


class CollectionResource(Resource):
    """A named set of variables that can be attached to many workspaces.

    ``priority`` decides which collection wins when several define the same
    key; the API does not allow changing it in place.
    """

    resource_type: ClassVar[str] = "terrakube_collection"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="collection",
        collection_path="/api/v1/organization/{organization_id}/collection",
        delete_status=204,
    )
    plan_priority: ClassVar[int] = 20

    organization_id: Annotated[str, PathKey(), ForceNew()]
    name: Annotated[str, Attr("name")]
    description: Annotated[str, Attr("description")] = ""
    priority: Annotated[int, Attr("priority"), ForceNew()] = 0


class CollectionReferenceResource(Resource):
    """Attaches a collection to a workspace.

    Created under the collection, but read, updated and deleted through the
    top-level ``/reference`` endpoint.
    """

    resource_type: ClassVar[str] = "terrakube_collection_reference"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="reference",
        collection_path=(
            "/api/v1/organization/{organization_id}/collection/{collection_id}/reference"
        ),
        member_path="/api/v1/reference/{id}",
        import_keys=("organization_id", "collection_id", "id"),
        delete_status=204,
    )

    organization_id: Annotated[str, PathKey(), ForceNew()]
    collection_id: Annotated[str, PathKey(), Rel("collection", "collection"), ForceNew()]
    workspace_id: Annotated[str, Rel("workspace", "workspace")]
    description: Annotated[str, Attr("description")] = ""
