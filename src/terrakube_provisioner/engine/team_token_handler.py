"""Handler for team access tokens.

Tokens are issued by the ``/access-token/v1/teams`` endpoint, which speaks
plain JSON rather than JSON:API. The server identifies a token by the
``jti`` claim of the JWT it returns, and only returns the JWT once.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import jwt

from terrakube_provisioner.core import jsonapi
from terrakube_provisioner.core.errors import UnmarshalError
from terrakube_provisioner.core.transport import JSON_MEDIA_TYPE
from terrakube_provisioner.engine.handlers import ResourceHandler
from terrakube_provisioner.resources.team import TeamTokenResource

if TYPE_CHECKING:
    from terrakube_provisioner.core.state import ResourceInstance
    from terrakube_provisioner.engine.handlers import EngineContext

logger = logging.getLogger(__name__)

# stored attribute -> JSON field
_FIELDS = {
    "team_name": "group",
    "description": "description",
    "days": "days",
    "hours": "hours",
    "minutes": "minutes",
}


def token_id(token: str) -> str:
    """The ``jti`` claim of *token*, read without verifying the signature."""
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise UnmarshalError(f"Team token is not a valid JWT: {exc}") from exc
    jti = claims.get("jti")
    if not isinstance(jti, str) or not jti:
        raise UnmarshalError("Team token has no 'jti' claim")
    return jti


class TeamTokenHandler(ResourceHandler[TeamTokenResource]):
    def _path(self) -> str:
        return TeamTokenResource.api.collection_path

    def create(self, ctx: EngineContext, desired: TeamTokenResource) -> dict[str, Any]:
        body = {wire: getattr(desired, name) for name, wire in _FIELDS.items()}
        resp = ctx.client.do("POST", self._path(), body=body, media_type=JSON_MEDIA_TYPE)
        payload = jsonapi.decode(resp.text)
        token = payload.get("token") if isinstance(payload, dict) else None
        if not isinstance(token, str):
            raise UnmarshalError(f"Team token response has no token: {resp.text!r}")

        attrs: dict[str, Any] = {"id": token_id(token)}
        attrs.update({name: getattr(desired, name) for name in _FIELDS})
        attrs["value"] = token
        logger.info("Issued %s (id=%s)", desired.address, attrs["id"])
        return attrs

    def read(self, ctx: EngineContext, prior: ResourceInstance) -> dict[str, Any] | None:
        resp = ctx.client.do("GET", self._path(), media_type=JSON_MEDIA_TYPE)
        tokens = jsonapi.decode(resp.text)
        if not isinstance(tokens, list) or not all(isinstance(t, dict) for t in tokens):
            raise UnmarshalError(f"Expected a list of team tokens: {resp.text!r}")

        attrs = dict(prior.attributes)
        match = next((t for t in tokens if t.get("id") == prior.resource_id), None)
        if match is None:
            # Listing only shows live tokens; keep what we know.
            logger.debug("Team token %s not listed, keeping state", prior.resource_id)
            return attrs
        for name, wire in _FIELDS.items():
            if wire in match:
                attrs[name] = match[wire]
        return attrs

    def update(
        self, ctx: EngineContext, desired: TeamTokenResource, prior: ResourceInstance
    ) -> dict[str, Any]:
        # Every field forces a new token, so there is nothing to send.
        _ = ctx, desired
        return dict(prior.attributes)

    def delete(self, ctx: EngineContext, prior: ResourceInstance) -> None:
        ctx.client.do(
            "DELETE",
            f"{self._path()}/{prior.resource_id}",
            media_type=JSON_MEDIA_TYPE,
            expected=TeamTokenResource.api.delete_status,
        )
        logger.info("Revoked %s (id=%s)", prior.address, prior.resource_id)
