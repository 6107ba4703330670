"""Source-control connection resource models: VCS OAuth apps and SSH keys."""

from __future__ import annotations

from typing import Annotated, ClassVar, Literal, Self

from pydantic import Field, computed_field, model_validator

from terrakube_provisioner.resources.base import ApiDescriptor, Resource
from terrakube_provisioner.resources.markers import Attr, ForceNew, PathKey

VcsType = Literal["GITHUB", "GITLAB", "BITBUCKET", "AZURE_DEVOPS"]

_HTTP_URL = r"^https?://.*$"

# vcs_type -> (default endpoint, default api_url, connect URL template)
VCS_DEFAULTS: dict[str, tuple[str, str, str]] = {
    "GITHUB": (
        "https://github.com",
        "https://api.github.com",
        "{endpoint}/login/oauth/authorize?client_id={client_id}&allow_signup=false&scope=repo",
    ),
    "GITLAB": (
        "https://gitlab.com",
        "https://gitlab.com/api/v4",
        "{endpoint}/oauth/authorize?client_id={client_id}&response_type=code&scope=api",
    ),
    "BITBUCKET": (
        "https://bitbucket.org",
        "https://api.bitbucket.org/2.0",
        "{endpoint}/site/oauth2/authorize?client_id={client_id}"
        "&response_type=code&scope=repository",
    ),
    "AZURE_DEVOPS": (
        "https://dev.azure.com",
        "https://dev.azure.com",
        "{endpoint}/oauth2/authorize?client_id={client_id}"
        "&response_type=Assertion&scope=vso.code+vso.code_status",
    ),
}


def vcs_connect_url(
    vcs_type: str | None, endpoint: str | None, client_id: str | None
) -> str | None:
    """URL where the OAuth app for *vcs_type* must be authorized."""
    if vcs_type not in VCS_DEFAULTS or endpoint is None:
        return None
    return VCS_DEFAULTS[vcs_type][2].format(endpoint=endpoint, client_id=client_id)


class SshResource(Resource):
    """An SSH private key used to clone repositories."""

    resource_type: ClassVar[str] = "terrakube_ssh"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="ssh",
        collection_path="/api/v1/organization/{organization_id}/ssh",
        delete_status=204,
    )
    plan_priority: ClassVar[int] = 20

    organization_id: Annotated[str, PathKey(), ForceNew()]
    name: Annotated[str, Attr("name"), ForceNew()]
    description: Annotated[str, Attr("description")] = ""
    private_key: Annotated[str, Attr("privateKey", sensitive=True)]
    ssh_type: Annotated[Literal["rsa", "ed25519"], Attr("sshType")] = "rsa"


class VcsResource(Resource):
    """An OAuth connection to a source-control provider.

    ``endpoint`` and ``api_url`` default from ``vcs_type``. After creation the
    connection stays ``PENDING`` until someone authorizes it at ``connect_url``.
    """

    resource_type: ClassVar[str] = "terrakube_vcs"
    api: ClassVar[ApiDescriptor] = ApiDescriptor(
        wire_type="vcs",
        collection_path="/api/v1/organization/{organization_id}/vcs",
        delete_status=204,
        computed={"status": "status"},
    )
    plan_priority: ClassVar[int] = 20

    organization_id: Annotated[str, PathKey(), ForceNew()]
    name: Annotated[str, Attr("name")]
    description: Annotated[str, Attr("description")] = ""
    vcs_type: Annotated[VcsType, Attr("vcsType")] = "GITHUB"
    client_id: Annotated[str, Attr("clientId")]
    client_secret: Annotated[str, Attr("clientSecret", sensitive=True)]
    endpoint: Annotated[str | None, Attr("endpoint"), Field(pattern=_HTTP_URL)] = None
    api_url: Annotated[str | None, Attr("apiUrl"), Field(pattern=_HTTP_URL)] = None

    @model_validator(mode="after")
    def _apply_type_defaults(self) -> Self:
        if self.endpoint is not None and self.api_url is None:
            raise ValueError("api_url is required when endpoint is set")
        default_endpoint, default_api_url, _ = VCS_DEFAULTS[self.vcs_type]
        if self.endpoint is None:
            self.endpoint = default_endpoint
        if self.api_url is None:
            self.api_url = default_api_url
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def connect_url(self) -> str | None:
        return vcs_connect_url(self.vcs_type, self.endpoint, self.client_id)
