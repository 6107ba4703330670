"""Organization-level resource models."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, ClassVar

from terrakube_provisioner.resources.base import ApiDescriptor, Resource
from terrakube_provisioner.resources.markers import Attr, ForceNew, PathKey

OrganizationId = Annotated[str, PathKey(), ForceNew()]


def _disable_organization(attrs: Mapping[str, Any]) -> dict[str, Any]:
    _ = attrs
    return {"disabled": True}


class OrganizationResource(Resource):
    """A Terrakube organization.

    Organizations are never hard-deleted; destroying one marks it disabled.
    """

    resource_type: ClassVar[str] = "terrakube_organization"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="organization",
        collection_path="/api/v1/organization",
        import_keys=("id",),
        soft_delete=_disable_organization,
    )
    plan_priority: ClassVar[int] = 0

    name: Annotated[str, Attr("name")]
    description: Annotated[str, Attr("description")] = ""
    execution_mode: Annotated[str, Attr("executionMode")] = "remote"


class OrganizationTagResource(Resource):
    resource_type: ClassVar[str] = "terrakube_organization_tag"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="tag",
        collection_path="/api/v1/organization/{organization_id}/tag",
        delete_status=204,
    )

    organization_id: OrganizationId
    name: Annotated[str, Attr("name")]


class OrganizationTemplateResource(Resource):
    """A job template; ``content`` is the template YAML, sent base64-encoded."""

    resource_type: ClassVar[str] = "terrakube_organization_template"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="template",
        collection_path="/api/v1/organization/{organization_id}/template",
        delete_status=204,
    )

    organization_id: OrganizationId
    name: Annotated[str, Attr("name")]
    description: Annotated[str | None, Attr("description")] = None
    version: Annotated[str | None, Attr("version")] = None
    content: Annotated[str, Attr("tcl", encoding="base64")]


class SelfHostedAgentResource(Resource):
    resource_type: ClassVar[str] = "terrakube_self_hosted_agent"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="agent",
        collection_path="/api/v1/organization/{organization_id}/agent",
        delete_status=204,
    )

    organization_id: OrganizationId
    name: Annotated[str, Attr("name")]
    description: Annotated[str, Attr("description")] = ""
    url: Annotated[str, Attr("url")]
