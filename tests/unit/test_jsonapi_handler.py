from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import pytest

from terrakube_provisioner.core.errors import ApiStatusError, NotFoundError
from terrakube_provisioner.core.state import ResourceInstance
from terrakube_provisioner.engine.jsonapi_handler import JsonApiHandler, VcsHandler
from terrakube_provisioner.resources import (
    OrganizationResource,
    OrganizationTagResource,
    OrganizationVariableResource,
    SshResource,
    TeamResource,
    VcsResource,
    WorkspaceCliResource,
    WorkspaceVcsResource,
)

if TYPE_CHECKING:
    from conftest import Api


def _instance(resource_type: str, attrs: dict[str, Any]) -> ResourceInstance:
    return ResourceInstance(
        address=f"{resource_type}.x", resource_type=resource_type, label="x", attributes=attrs
    )


def _workspace() -> WorkspaceCliResource:
    return WorkspaceCliResource(
        label="sample", organization_id="org-1", name="sample", iac_version="1.5.7"
    )


_WORKSPACE_ATTRS = {
    "name": "sample",
    "description": "",
    "executionMode": "remote",
    "iacType": "terraform",
    "terraformVersion": "1.5.7",
    "source": "empty",
    "branch": "remote-content",
}


class TestCreate:
    def test_posts_to_collection_with_constants(self, api: Api) -> None:
        handler = JsonApiHandler(WorkspaceCliResource)
        api.queue(api.reply(201, api.resource("workspace", "w1", _WORKSPACE_ATTRS)))

        attrs = handler.create(api.ctx, _workspace())

        assert api.requests() == [("POST", "/api/v1/organization/org-1/workspace")]
        doc = api.body(0)
        assert doc["data"]["type"] == "workspace"
        assert "id" not in doc["data"]
        assert doc["data"]["attributes"] == _WORKSPACE_ATTRS
        assert attrs == {
            "id": "w1",
            "organization_id": "org-1",
            "name": "sample",
            "description": "",
            "execution_mode": "remote",
            "iac_type": "terraform",
            "iac_version": "1.5.7",
        }

    def test_create_then_read_round_trips(self, api: Api) -> None:
        handler = JsonApiHandler(WorkspaceCliResource)
        body = api.resource("workspace", "w1", _WORKSPACE_ATTRS)
        api.queue(api.reply(201, body), api.reply(200, body))

        created = handler.create(api.ctx, _workspace())
        read = handler.read(api.ctx, _instance("terrakube_workspace_cli", created))

        assert read == created
        assert api.requests()[1] == ("GET", "/api/v1/organization/org-1/workspace/w1")

    def test_api_error_surfaces(self, api: Api) -> None:
        handler = JsonApiHandler(OrganizationTagResource)
        api.queue(api.reply(400, {"errors": [{"detail": "duplicated"}]}))

        with pytest.raises(ApiStatusError, match="duplicated"):
            handler.create(
                api.ctx, OrganizationTagResource(label="t", organization_id="org-1", name="x")
            )


    def test_team_vcs_and_template_flags_are_independent(self, api: Api) -> None:
        handler = JsonApiHandler(TeamResource)
        api.queue(
            api.reply(
                201,
                api.resource(
                    "team", "t1", {"name": "OPS", "manageVcs": True, "manageTemplate": False}
                ),
            )
        )
        desired = TeamResource(
            label="ops", organization_id="org-1", name="OPS", manage_vcs=True, manage_template=False
        )

        attrs = handler.create(api.ctx, desired)

        sent = api.body(0)["data"]["attributes"]
        assert sent["manageVcs"] is True
        assert sent["manageTemplate"] is False
        assert attrs["manage_vcs"] is True
        assert attrs["manage_template"] is False

class TestSensitiveValues:
    def test_sensitive_variable_keeps_configured_value(self, api: Api) -> None:
        handler = JsonApiHandler(OrganizationVariableResource)
        echoed = api.resource(
            "globalvar",
            "v1",
            {
                "key": "TOKEN",
                "value": "",
                "description": "",
                "category": "ENV",
                "sensitive": True,
                "hcl": False,
            },
        )
        api.queue(api.reply(201, echoed), api.reply(200, echoed))
        desired = OrganizationVariableResource(
            label="token",
            organization_id="org-1",
            key="TOKEN",
            value="v",
            category="ENV",
            sensitive=True,
        )

        created = handler.create(api.ctx, desired)
        read = handler.read(api.ctx, _instance(desired.resource_type, created))

        assert api.body(0)["data"]["attributes"]["value"] == "v"
        assert created["value"] == "v"
        assert read is not None
        assert read["value"] == "v"

    def test_private_key_never_blanked(self, api: Api) -> None:
        handler = JsonApiHandler(SshResource)
        api.queue(
            api.reply(
                200,
                api.resource(
                    "ssh", "s1", {"name": "deploy", "description": "", "sshType": "rsa"}
                ),
            )
        )
        prior = _instance(
            "terrakube_ssh",
            {
                "id": "s1",
                "organization_id": "org-1",
                "name": "deploy",
                "private_key": "-----BEGIN KEY-----",
            },
        )

        read = handler.read(api.ctx, prior)

        assert read is not None
        assert read["private_key"] == "-----BEGIN KEY-----"


class TestUpdate:
    def test_patches_then_reads_back(self, api: Api) -> None:
        handler = JsonApiHandler(OrganizationTagResource)
        api.queue(
            api.reply(204),
            api.reply(200, api.resource("tag", "t1", {"name": "renamed-by-server"})),
        )
        prior = _instance(
            "terrakube_organization_tag", {"id": "t1", "organization_id": "org-1", "name": "a"}
        )

        attrs = handler.update(
            api.ctx,
            OrganizationTagResource(label="x", organization_id="org-1", name="b"),
            prior,
        )

        assert api.requests() == [
            ("PATCH", "/api/v1/organization/org-1/tag/t1"),
            ("GET", "/api/v1/organization/org-1/tag/t1"),
        ]
        assert api.body(0)["data"] == {"type": "tag", "id": "t1", "attributes": {"name": "b"}}
        assert attrs["name"] == "renamed-by-server"

    def test_team_template_flag_sent_without_vcs(self, api: Api) -> None:
        handler = JsonApiHandler(TeamResource)
        api.queue(
            api.reply(204),
            api.reply(
                200,
                api.resource(
                    "team", "t1", {"name": "OPS", "manageVcs": False, "manageTemplate": True}
                ),
            ),
        )
        prior = _instance(
            "terrakube_team",
            {"id": "t1", "organization_id": "org-1", "name": "OPS", "manage_vcs": True},
        )
        desired = TeamResource(
            label="x", organization_id="org-1", name="OPS", manage_vcs=False, manage_template=True
        )

        attrs = handler.update(api.ctx, desired, prior)

        sent = api.body(0)["data"]["attributes"]
        assert (sent["manageVcs"], sent["manageTemplate"]) == (False, True)
        assert (attrs["manage_vcs"], attrs["manage_template"]) == (False, True)


class TestDelete:
    def test_workspace_is_renamed_not_deleted(self, api: Api) -> None:
        handler = JsonApiHandler(WorkspaceCliResource)
        api.queue(api.reply(204))
        prior = _instance(
            "terrakube_workspace_cli", {"id": "w1", "organization_id": "org-1", "name": "sample"}
        )

        handler.delete(api.ctx, prior)

        assert api.requests() == [("PATCH", "/api/v1/organization/org-1/workspace/w1")]
        data = api.body(0)["data"]
        assert data["id"] == "w1"
        assert data["attributes"]["deleted"] is True
        assert re.fullmatch(r"^sample_DEL_[A-Za-z0-9]{4}$", data["attributes"]["name"])

    def test_workspace_delete_resends_record(self, api: Api) -> None:
        handler = JsonApiHandler(WorkspaceCliResource)
        api.queue(api.reply(204))
        prior = _instance(
            "terrakube_workspace_cli",
            {
                "id": "w1",
                "organization_id": "org-1",
                "name": "sample",
                "description": "demo",
                "execution_mode": "local",
                "iac_type": "tofu",
                "iac_version": "1.6.0",
            },
        )

        handler.delete(api.ctx, prior)

        attributes = api.body(0)["data"]["attributes"]
        assert attributes.pop("name").startswith("sample_DEL_")
        assert attributes == {
            "description": "demo",
            "executionMode": "local",
            "iacType": "tofu",
            "terraformVersion": "1.6.0",
            "source": "empty",
            "branch": "remote-content",
            "deleted": True,
        }

    def test_vcs_workspace_delete_resends_repository(self, api: Api) -> None:
        handler = JsonApiHandler(WorkspaceVcsResource)
        api.queue(api.reply(204))
        prior = _instance(
            "terrakube_workspace_vcs",
            {
                "id": "w2",
                "organization_id": "org-1",
                "name": "infra",
                "repository": "https://github.com/acme/infra.git",
                "branch": "develop",
                "vcs_id": "v1",
            },
        )

        handler.delete(api.ctx, prior)

        assert api.requests() == [("PATCH", "/api/v1/organization/org-1/workspace/w2")]
        attributes = api.body(0)["data"]["attributes"]
        assert attributes["source"] == "https://github.com/acme/infra.git"
        assert attributes["branch"] == "develop"
        assert attributes["deleted"] is True
        assert "relationships" not in api.body(0)["data"]

    def test_organization_is_disabled(self, api: Api) -> None:
        handler = JsonApiHandler(OrganizationResource)
        api.queue(api.reply(200))

        handler.delete(api.ctx, _instance("terrakube_organization", {"id": "org-1"}))

        assert api.requests() == [("PATCH", "/api/v1/organization/org-1")]
        assert api.body(0)["data"]["attributes"] == {"disabled": True}

    def test_delete_expects_descriptor_status(self, api: Api) -> None:
        handler = JsonApiHandler(OrganizationTagResource)
        api.queue(api.reply(204))

        handler.delete(
            api.ctx, _instance("terrakube_organization_tag", {"id": "t1", "organization_id": "o"})
        )

        assert api.requests() == [("DELETE", "/api/v1/organization/o/tag/t1")]

    def test_delete_wrong_success_status_fails(self, api: Api) -> None:
        handler = JsonApiHandler(OrganizationTagResource)
        api.queue(api.reply(200))

        with pytest.raises(ApiStatusError):
            handler.delete(
                api.ctx,
                _instance("terrakube_organization_tag", {"id": "t1", "organization_id": "o"}),
            )


class TestRead:
    def test_not_found_is_an_error(self, api: Api) -> None:
        handler = JsonApiHandler(OrganizationTagResource)
        api.queue(api.reply(404))

        with pytest.raises(NotFoundError):
            handler.read(
                api.ctx,
                _instance("terrakube_organization_tag", {"id": "t1", "organization_id": "o"}),
            )


class TestVcs:
    def _vcs(self) -> VcsResource:
        return VcsResource(
            label="gh", organization_id="org-1", name="github", client_id="cid", client_secret="s"
        )

    def test_defaults_from_type(self) -> None:
        vcs = VcsResource(
            label="gl",
            organization_id="o",
            name="gitlab",
            vcs_type="GITLAB",
            client_id="c",
            client_secret="s",
        )
        assert vcs.endpoint == "https://gitlab.com"
        assert vcs.api_url == "https://gitlab.com/api/v4"

    def test_endpoint_requires_api_url(self) -> None:
        with pytest.raises(ValueError, match="api_url"):
            VcsResource(
                label="gh",
                organization_id="o",
                name="n",
                client_id="c",
                client_secret="s",
                endpoint="https://github.example",
            )

    def test_created_pending_with_connect_url(self, api: Api) -> None:
        handler = VcsHandler(VcsResource)
        api.queue(
            api.reply(
                201,
                api.resource(
                    "vcs",
                    "vcs-1",
                    {
                        "name": "github",
                        "description": "",
                        "vcsType": "GITHUB",
                        "clientId": "cid",
                        "endpoint": "https://github.com",
                        "apiUrl": "https://api.github.com",
                        "status": "PENDING",
                    },
                ),
            )
        )

        attrs = handler.create(api.ctx, self._vcs())

        sent = api.body(0)["data"]["attributes"]
        assert sent["status"] == "PENDING"
        assert sent["clientSecret"] == "s"
        assert attrs["status"] == "PENDING"
        assert attrs["client_secret"] == "s"
        assert attrs["connect_url"] == (
            "https://github.com/login/oauth/authorize"
            "?client_id=cid&allow_signup=false&scope=repo"
        )

    def test_update_keeps_prior_status(self, api: Api) -> None:
        handler = VcsHandler(VcsResource)
        completed = api.resource(
            "vcs", "vcs-1", {"name": "github", "vcsType": "GITHUB", "status": "COMPLETED"}
        )
        api.queue(api.reply(204), api.reply(200, completed))
        prior = _instance(
            "terrakube_vcs", {"id": "vcs-1", "organization_id": "org-1", "status": "COMPLETED"}
        )

        handler.update(api.ctx, self._vcs(), prior)

        assert api.body(0)["data"]["attributes"]["status"] == "COMPLETED"
