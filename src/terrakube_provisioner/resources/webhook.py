"""Workspace webhook resource models.

``terrakube_workspace_webhook`` is the original REST resource. The v2
webhook and its events are managed through JSON:API atomic operations, with
client-generated ids.
"""

from __future__ import annotations

from typing import Annotated, ClassVar, Literal

from pydantic import Field

from terrakube_provisioner.resources.base import ApiDescriptor, Resource
from terrakube_provisioner.resources.markers import Attr, ForceNew, PathKey, Rel

WebhookEvent = Literal["PUSH"]


class WorkspaceWebhookResource(Resource):
    resource_type: ClassVar[str] = "terrakube_workspace_webhook"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="webhook",
        collection_path=(
            "/api/v1/organization/{organization_id}/workspace/{workspace_id}/webhook"
        ),
        import_keys=("organization_id", "workspace_id", "id"),
        delete_status=204,
        computed={"remote_hook_id": "remoteHookId"},
    )
    plan_priority: ClassVar[int] = 40

    organization_id: Annotated[str, PathKey(), ForceNew()]
    workspace_id: Annotated[str, PathKey(), ForceNew()]
    path: Annotated[list[str], Attr("path", encoding="csv")] = Field(default_factory=list)
    branch: Annotated[list[str], Attr("branch", encoding="csv")] = Field(default_factory=list)
    template_id: Annotated[str, Attr("templateId")]
    event: Annotated[WebhookEvent, Attr("event")] = "PUSH"


class WorkspaceWebhookV2Resource(Resource):
    """A webhook aggregate for a workspace; its triggers are webhook events."""

    resource_type: ClassVar[str] = "terrakube_workspace_webhook_v2"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="webhook",
        collection_path=(
            "/api/v1/organization/{organization_id}/workspace/{workspace_id}/webhook"
        ),
        import_keys=("organization_id", "workspace_id", "id"),
        delete_status=204,
        computed={"remote_hook_id": "remoteHookId"},
    )
    plan_priority: ClassVar[int] = 40

    organization_id: Annotated[str, PathKey(), ForceNew()]
    workspace_id: Annotated[str, PathKey(), Rel("workspace", "workspace"), ForceNew()]


class WorkspaceWebhookEventResource(Resource):
    """One trigger (event, branches, paths, template) of a v2 webhook."""

    resource_type: ClassVar[str] = "terrakube_workspace_webhook_event"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="webhook_event",
        collection_path="/webhook/{webhook_id}/events",
        import_keys=("webhook_id", "id"),
    )
    plan_priority: ClassVar[int] = 50

    webhook_id: Annotated[str, PathKey(), ForceNew()]
    event: Annotated[WebhookEvent, Attr("event")] = "PUSH"
    branch: Annotated[list[str], Attr("branch", encoding="csv")] = Field(default_factory=list)
    path: Annotated[list[str], Attr("path", encoding="csv")] = Field(default_factory=list)
    priority: Annotated[int | None, Attr("priority")] = None
    template_id: Annotated[str, Attr("templateId")]
