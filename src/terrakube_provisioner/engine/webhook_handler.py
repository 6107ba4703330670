"""Handlers for v2 webhooks and their events.

Both are written through the JSON:API atomic-operations endpoint with
client-generated ids, and read back through the regular REST paths.
A webhook that no longer exists is treated as removed rather than as an
error, unlike every other resource type.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any

from terrakube_provisioner.core import jsonapi
from terrakube_provisioner.core.errors import NotFoundError, TerrakubeError, UnmarshalError
from terrakube_provisioner.core.transport import ATOMIC_MEDIA_TYPE
from terrakube_provisioner.engine.handlers import ResourceHandler
from terrakube_provisioner.engine.jsonapi_handler import JsonApiHandler, desired_values
from terrakube_provisioner.resources.markers import build_attributes, extract_attributes
from terrakube_provisioner.resources.webhook import (
    WorkspaceWebhookEventResource,
    WorkspaceWebhookV2Resource,
)

if TYPE_CHECKING:
    from terrakube_provisioner.core.state import ResourceInstance
    from terrakube_provisioner.engine.handlers import EngineContext

logger = logging.getLogger(__name__)

OPERATIONS_PATH = "/api/v1/operations"


def post_operations(ctx: EngineContext, *operations: dict[str, Any]) -> str:
    """POST an atomic-operations document and return the response body."""
    resp = ctx.client.do(
        "POST",
        OPERATIONS_PATH,
        body=jsonapi.atomic_document(*operations),
        media_type=ATOMIC_MEDIA_TYPE,
    )
    return resp.text


class WorkspaceWebhookV2Handler(JsonApiHandler[WorkspaceWebhookV2Resource]):
    def __init__(self) -> None:
        super().__init__(WorkspaceWebhookV2Resource)

    def create(self, ctx: EngineContext, desired: WorkspaceWebhookV2Resource) -> dict[str, Any]:
        org, ws = desired.organization_id, desired.workspace_id
        data = {
            "type": self.api.wire_type,
            "id": str(uuid.uuid4()),
            "relationships": {"workspace": jsonapi.linkage("workspace", ws)},
        }
        text = post_operations(
            ctx,
            jsonapi.atomic_operation("add", f"/organization/{org}/workspace/{ws}/webhook", data),
        )
        webhook_id = jsonapi.atomic_result_id(text)
        logger.info("Created %s (id=%s)", desired.address, webhook_id)
        return {
            "id": webhook_id,
            "organization_id": org,
            "workspace_id": ws,
            "remote_hook_id": webhook_id,
        }

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        try:
            return super().read(ctx, prior)
        except NotFoundError:
            logger.info("%s no longer exists, removing from state", prior.address)
            return None


class WorkspaceWebhookEventHandler(ResourceHandler[WorkspaceWebhookEventResource]):
    """One event of a v2 webhook.

    Events have no GET of their own: they are found through the webhook's
    ``events`` relationship and the workspace-scoped events listing.
    """

    model = WorkspaceWebhookEventResource

    def _webhook(self, ctx: EngineContext, webhook_id: str) -> dict[str, Any]:
        resp = ctx.client.do("GET", f"/api/v1/webhook/{webhook_id}")
        return jsonapi.parse_resource(resp.text)

    def _require_webhook(self, ctx: EngineContext, webhook_id: str) -> dict[str, Any]:
        try:
            return self._webhook(ctx, webhook_id)
        except NotFoundError as exc:
            raise TerrakubeError(f"Webhook with ID {webhook_id} not found") from exc

    def _scope(self, ctx: EngineContext, webhook: dict[str, Any]) -> tuple[str, str]:
        """``(organization_id, workspace_id)`` of the workspace owning *webhook*."""
        workspace_id = jsonapi.relationship_id(webhook, "workspace")
        if workspace_id is None:
            raise UnmarshalError("Could not determine workspace ID from webhook response")
        resp = ctx.client.do("GET", f"/api/v1/workspace/{workspace_id}")
        organization_id = jsonapi.relationship_id(jsonapi.parse_resource(resp.text), "organization")
        if organization_id is None:
            raise UnmarshalError("Could not determine organization ID from workspace response")
        return organization_id, workspace_id

    def _find_event(
        self, ctx: EngineContext, scope: tuple[str, str], webhook_id: str, event_id: str
    ) -> dict[str, Any] | None:
        org, ws = scope
        resp = ctx.client.do(
            "GET", f"/api/v1/organization/{org}/workspace/{ws}/webhook/{webhook_id}/events"
        )
        return next(
            (e for e in jsonapi.parse_resources(resp.text) if e.get("id") == event_id), None
        )

    def _to_state(self, event: dict[str, Any], webhook_id: str) -> dict[str, Any]:
        attrs: dict[str, Any] = {"id": event["id"], "webhook_id": webhook_id}
        attrs.update(extract_attributes(self.model, event, {}))
        return attrs

    def create(
        self, ctx: EngineContext, desired: WorkspaceWebhookEventResource
    ) -> dict[str, Any]:
        self._require_webhook(ctx, desired.webhook_id)
        data = {
            "type": desired.api.wire_type,
            "id": str(uuid.uuid4()),
            "attributes": build_attributes(desired),
        }
        text = post_operations(
            ctx,
            jsonapi.atomic_operation("add", f"/webhook/{desired.webhook_id}/events", data),
        )
        event_id = jsonapi.atomic_result_id(text)
        logger.info("Created %s (id=%s)", desired.address, event_id)
        return {"id": event_id, **desired_values(desired)}

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        webhook_id = prior.attributes["webhook_id"]
        try:
            webhook = self._webhook(ctx, webhook_id)
        except NotFoundError:
            logger.info("Webhook %s no longer exists, removing %s", webhook_id, prior.address)
            return None
        if prior.resource_id not in jsonapi.relationship_ids(webhook, "events"):
            logger.info("%s no longer exists, removing from state", prior.address)
            return None
        event = self._find_event(
            ctx, self._scope(ctx, webhook), webhook_id, prior.resource_id
        )
        if event is None:
            return None
        return self._to_state(event, webhook_id)

    def update(
        self,
        ctx: EngineContext,
        desired: WorkspaceWebhookEventResource,
        prior: ResourceInstance,
    ) -> dict[str, Any]:
        webhook = self._require_webhook(ctx, desired.webhook_id)
        org, ws = self._scope(ctx, webhook)
        event_id = prior.resource_id
        data = {
            "type": desired.api.wire_type,
            "id": event_id,
            "attributes": build_attributes(desired),
        }
        href = f"/organization/{org}/workspace/{ws}/webhook/{desired.webhook_id}/events/{event_id}"
        post_operations(ctx, jsonapi.atomic_operation("update", href, data))

        event = self._find_event(ctx, (org, ws), desired.webhook_id, event_id)
        if event is None:
            raise TerrakubeError(f"Could not find updated event {event_id} in webhook events")
        logger.info("Updated %s (id=%s)", desired.address, event_id)
        return self._to_state(event, desired.webhook_id)

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        webhook_id = prior.attributes["webhook_id"]
        try:
            webhook = self._webhook(ctx, webhook_id)
        except NotFoundError:
            logger.info("Webhook %s already gone; %s is deleted", webhook_id, prior.address)
            return
        if prior.resource_id not in jsonapi.relationship_ids(webhook, "events"):
            logger.info("%s already removed from webhook %s", prior.address, webhook_id)
            return
        post_operations(
            ctx,
            jsonapi.atomic_operation("remove", f"/webhook/{webhook_id}/events/{prior.resource_id}"),
        )
        logger.info("Deleted %s (id=%s)", prior.address, prior.resource_id)
