"""Workspace resource models.

Workspaces are never removed through ``DELETE``. Deleting one renames it to
``<name>_DEL_<suffix>`` and sets ``deleted``, so the original name is free for
a new workspace straight away.
"""

from __future__ import annotations

import secrets
import string
from collections.abc import Mapping
from typing import Annotated, Any, ClassVar

from terrakube_provisioner.resources.base import ApiDescriptor, Resource
from terrakube_provisioner.resources.markers import Attr, ForceNew, PathKey, Rel

_SUFFIX_ALPHABET = string.ascii_letters + string.digits


def random_suffix(length: int = 4) -> str:
    """Random ``[a-zA-Z0-9]`` string drawn from the OS CSPRNG."""
    return "".join(
        _SUFFIX_ALPHABET[b % len(_SUFFIX_ALPHABET)] for b in secrets.token_bytes(length)
    )


def deleted_workspace_name(name: str) -> str:
    return f"{name}_DEL_{random_suffix()}"


def _soft_delete_workspace(attrs: Mapping[str, Any]) -> dict[str, Any]:
    return {"name": deleted_workspace_name(attrs["name"]), "deleted": True}


def _workspace_api(**kwargs: Any) -> ApiDescriptor:
    return ApiDescriptor(
        wire_type="workspace",
        collection_path="/api/v1/organization/{organization_id}/workspace",
        soft_delete=_soft_delete_workspace,
        soft_delete_full=True,
        **kwargs,
    )


class WorkspaceResource(Resource):
    plan_priority: ClassVar[int] = 30

    organization_id: Annotated[str, PathKey(), ForceNew()]
    name: Annotated[str, Attr("name")]
    description: Annotated[str, Attr("description")] = ""
    execution_mode: Annotated[str, Attr("executionMode")] = "remote"
    iac_type: Annotated[str, Attr("iacType")] = "terraform"
    iac_version: Annotated[str, Attr("terraformVersion")]


class WorkspaceCliResource(WorkspaceResource):
    """A CLI-driven workspace: runs are started from a local ``terraform`` client."""

    resource_type: ClassVar[str] = "terrakube_workspace_cli"
    api: ClassVar[ApiDescriptor] = _workspace_api(
        constants={"source": "empty", "branch": "remote-content"},
    )


class WorkspaceVcsResource(WorkspaceResource):
    """A workspace whose code is checked out from a repository."""

    resource_type: ClassVar[str] = "terrakube_workspace_vcs"
    api: ClassVar[ApiDescriptor] = _workspace_api()

    repository: Annotated[str, Attr("source")]
    branch: Annotated[str, Attr("branch")] = "main"
    folder: Annotated[str, Attr("folder")] = "/"
    vcs_id: Annotated[str | None, Rel("vcs", "vcs")] = None


class WorkspaceTagResource(Resource):
    resource_type: ClassVar[str] = "terrakube_workspace_tag"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="workspacetag",
        collection_path=(
            "/api/v1/organization/{organization_id}/workspace/{workspace_id}/workspaceTag"
        ),
        import_keys=("organization_id", "workspace_id", "id"),
        updatable=False,
    )

    organization_id: Annotated[str, PathKey(), ForceNew()]
    workspace_id: Annotated[str, PathKey(), ForceNew()]
    tag_id: Annotated[str, Attr("tagId"), ForceNew()]


class WorkspaceAccessResource(Resource):
    """Grants a team access to a single workspace."""

    resource_type: ClassVar[str] = "terrakube_workspace_access"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="access",
        collection_path=(
            "/api/v1/organization/{organization_id}/workspace/{workspace_id}/access"
        ),
        import_keys=("organization_id", "workspace_id", "id"),
        delete_status=204,
    )

    organization_id: Annotated[str, PathKey(), ForceNew()]
    workspace_id: Annotated[str, PathKey(), ForceNew()]
    name: Annotated[str, Attr("name"), ForceNew()]
    manage_state: Annotated[bool, Attr("manageState")] = False
    manage_workspace: Annotated[bool, Attr("manageWorkspace")] = False
    manage_job: Annotated[bool, Attr("manageJob")] = False


class WorkspaceScheduleResource(Resource):
    """Runs a template on a cron schedule."""

    resource_type: ClassVar[str] = "terrakube_workspace_schedule"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="schedule",
        collection_path="/api/v1/workspace/{workspace_id}/schedule",
        import_keys=("organization_id", "workspace_id", "id"),
        delete_status=204,
    )

    organization_id: Annotated[str, ForceNew()]
    workspace_id: Annotated[str, PathKey(), ForceNew()]
    schedule: Annotated[str, Attr("cron")]
    template_id: Annotated[str, Attr("templateReference")]
