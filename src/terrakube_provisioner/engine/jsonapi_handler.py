"""Generic CRUD handler for resources that map one-to-one onto a JSON:API type.

Everything type-specific lives on the model: the ``ApiDescriptor`` class
variable says where the object lives and how it is deleted, and the field
markers say which fields are attributes, relationships or URL path keys.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from terrakube_provisioner.core import jsonapi
from terrakube_provisioner.engine.handlers import R, ResourceHandler
from terrakube_provisioner.engine.references import find_references
from terrakube_provisioner.resources.connection import vcs_connect_url
from terrakube_provisioner.resources.markers import (
    build_attributes,
    build_relationships,
    extract_attributes,
    path_key_fields,
    relationship_fields,
    stored_attributes,
    unmapped_fields,
)

if TYPE_CHECKING:
    from terrakube_provisioner.core.state import ResourceInstance
    from terrakube_provisioner.engine.handlers import EngineContext, PlanContext

logger = logging.getLogger(__name__)

# Fields every model carries that never reach the API or state.
_LIFECYCLE_FIELDS = frozenset({"label", "depends_on"})


def desired_values(resource: Any) -> dict[str, Any]:
    """The configured field values of *resource*, without computed or lifecycle fields."""
    exclude = set(type(resource).model_computed_fields) | _LIFECYCLE_FIELDS
    return resource.model_dump(exclude=exclude)


def passthrough_fields(model: type) -> list[str]:
    """Fields kept in state as configured: path keys and other unmapped fields."""
    return [name for name in unmapped_fields(model) if name not in _LIFECYCLE_FIELDS]


class JsonApiHandler(ResourceHandler[R]):
    """Create, read, update and delete one JSON:API resource type."""

    def __init__(self, model: type[R]) -> None:
        self.model = model
        self.api = model.api

    # ── Request helpers ─────────────────────────────────────────────

    def _keys(self, attrs: dict[str, Any]) -> dict[str, Any]:
        keys = {name: attrs.get(name) for name in path_key_fields(self.model)}
        keys["id"] = attrs.get("id")
        return keys

    def _request_attributes(
        self, desired: R, prior: ResourceInstance | None
    ) -> dict[str, Any]:
        _ = prior
        return {**self.api.constants, **build_attributes(desired)}

    def _to_state(self, data: dict[str, Any], known: dict[str, Any]) -> dict[str, Any]:
        """Map a response resource object onto stored attributes.

        *known* supplies path keys, unmapped fields and sensitive values the
        response does not carry.
        """
        attrs: dict[str, Any] = {"id": data["id"]}
        for name in passthrough_fields(self.model):
            attrs[name] = known.get(name)
        attrs.update(extract_attributes(self.model, data, known))
        wire_attrs = data.get("attributes", {})
        for name, wire in self.api.computed.items():
            attrs[name] = wire_attrs.get(wire)
        return attrs

    def _get(self, ctx: EngineContext, keys: dict[str, Any]) -> dict[str, Any]:
        resp = ctx.client.do("GET", self.api.member_url(keys))
        return jsonapi.parse_resource(resp.text)

    # ── Validation ──────────────────────────────────────────────────

    def validate_plan(self, ctx: EngineContext, desired: R, plan_ctx: PlanContext) -> list[str]:
        """Relationship fields must reference the id of an object of the right type."""
        _ = ctx
        errors: list[str] = []
        for name, marker in relationship_fields(desired):
            for ref in find_references(getattr(desired, name)):
                wire_type = plan_ctx.wire_type(ref.address)
                if wire_type is not None and wire_type != marker.wire_type:
                    errors.append(
                        f"{desired.address}: {name} must reference a '{marker.wire_type}' "
                        f"object, but {ref.address} is a '{wire_type}'"
                    )
        return errors

    # ── CRUD ────────────────────────────────────────────────────────

    def create(self, ctx: EngineContext, desired: R) -> dict[str, Any]:
        doc = jsonapi.resource_document(
            self.api.wire_type,
            self._request_attributes(desired, None),
            relationships=build_relationships(desired),
        )
        resp = ctx.client.do("POST", self.api.collection_url(desired.path_keys()), body=doc)
        data = jsonapi.parse_resource(resp.text)
        logger.info("Created %s (id=%s)", desired.address, data["id"])
        return self._to_state(data, desired_values(desired))

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        data = self._get(ctx, self._keys(prior.attributes))
        return self._to_state(data, prior.attributes)

    def update(self, ctx: EngineContext, desired: R, prior: ResourceInstance) -> dict[str, Any]:
        keys = self._keys(prior.attributes)
        doc = jsonapi.resource_document(
            self.api.wire_type,
            self._request_attributes(desired, prior),
            resource_id=keys["id"],
            relationships=build_relationships(desired),
        )
        ctx.client.do("PATCH", self.api.member_url(keys), body=doc)
        logger.info("Updated %s (id=%s)", desired.address, keys["id"])
        return self._to_state(self._get(ctx, keys), desired_values(desired))

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        keys = self._keys(prior.attributes)
        url = self.api.member_url(keys)
        if self.api.soft_delete is not None:
            attributes = self.api.soft_delete(prior.attributes)
            if self.api.soft_delete_full:
                attributes = {
                    **stored_attributes(self.model, prior.attributes),
                    **self.api.constants,
                    **attributes,
                }
            doc = jsonapi.resource_document(self.api.wire_type, attributes, resource_id=keys["id"])
            ctx.client.do("PATCH", url, body=doc)
            logger.info("Soft-deleted %s (id=%s)", prior.address, keys["id"])
            return
        ctx.client.do("DELETE", url, expected=self.api.delete_status)
        logger.info("Deleted %s (id=%s)", prior.address, keys["id"])


class VcsHandler(JsonApiHandler[Any]):
    """VCS connections carry an OAuth status the user completes out of band.

    New connections are sent as ``PENDING``; updates resend the status last
    read so an authorized connection stays authorized.
    """

    def _request_attributes(self, desired: Any, prior: ResourceInstance | None) -> dict[str, Any]:
        attrs = super()._request_attributes(desired, prior)
        attrs["status"] = "PENDING" if prior is None else prior.attributes.get("status")
        return attrs

    def _to_state(self, data: dict[str, Any], known: dict[str, Any]) -> dict[str, Any]:
        attrs = super()._to_state(data, known)
        attrs["connect_url"] = vcs_connect_url(
            attrs.get("vcs_type"), attrs.get("endpoint"), attrs.get("client_id")
        )
        if attrs.get("status") == "PENDING":
            logger.warning(
                "VCS connection %s is pending; authorize it at %s",
                attrs.get("name"),
                attrs["connect_url"],
            )
        return attrs
