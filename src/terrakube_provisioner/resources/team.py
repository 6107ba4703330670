"""Team and team token resource models."""

from __future__ import annotations

from typing import Annotated, ClassVar

from pydantic import Field

from terrakube_provisioner.resources.base import ApiDescriptor, Resource
from terrakube_provisioner.resources.markers import Attr, ForceNew, PathKey


class TeamResource(Resource):
    """Team permissions within an organization; ``name`` is the identity-provider group."""

    resource_type: ClassVar[str] = "terrakube_team"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="team",
        collection_path="/api/v1/organization/{organization_id}/team",
    )
    plan_priority: ClassVar[int] = 10

    organization_id: Annotated[str, PathKey(), ForceNew()]
    name: Annotated[str, Attr("name")]
    manage_workspace: Annotated[bool, Attr("manageWorkspace")] = False
    manage_module: Annotated[bool, Attr("manageModule")] = False
    manage_provider: Annotated[bool, Attr("manageProvider")] = False
    manage_vcs: Annotated[bool, Attr("manageVcs")] = False
    manage_template: Annotated[bool, Attr("manageTemplate")] = False


class TeamTokenResource(Resource):
    """A personal access token issued to a team.

    Tokens cannot be changed once issued; every field forces a new token.
    The token value is only returned on creation.
    """

    resource_type: ClassVar[str] = "terrakube_team_token"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="token",
        collection_path="/access-token/v1/teams",
        import_keys=("id",),
        delete_status=202,
        sensitive=("value",),
    )

    team_name: Annotated[str, ForceNew()]
    description: Annotated[str, ForceNew()] = ""
    days: Annotated[int, Field(ge=0), ForceNew()] = 0
    hours: Annotated[int, Field(ge=0), ForceNew()] = 0
    minutes: Annotated[int, Field(ge=0), ForceNew()] = 0
