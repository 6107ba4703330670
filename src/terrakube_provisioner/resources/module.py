"""Private registry module resource model."""

from __future__ import annotations

from typing import Annotated, ClassVar

from terrakube_provisioner.resources.base import ApiDescriptor, Resource
from terrakube_provisioner.resources.markers import Attr, ForceNew, PathKey, Rel


class ModuleResource(Resource):
    """A module published in the organization's private registry.

    ``vcs_id`` and ``ssh_id`` optionally point at the connection used to
    clone ``source``.
    """

    resource_type: ClassVar[str] = "terrakube_module"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="module",
        collection_path="/api/v1/organization/{organization_id}/module",
    )
    plan_priority: ClassVar[int] = 30

    organization_id: Annotated[str, PathKey(), ForceNew()]
    name: Annotated[str, Attr("name")]
    description: Annotated[str, Attr("description")] = ""
    provider_name: Annotated[str, Attr("provider")]
    source: Annotated[str, Attr("source")]
    tag_prefix: Annotated[str | None, Attr("tagPrefix")] = None
    folder: Annotated[str | None, Attr("folder")] = None
    vcs_id: Annotated[str | None, Rel("vcs", "vcs")] = None
    ssh_id: Annotated[str | None, Rel("ssh", "ssh")] = None
