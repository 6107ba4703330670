"""Data sources: look up existing Terrakube objects by name."""

from __future__ import annotations

from typing import ClassVar

from terrakube_provisioner.resources.base import DataSource, LookupDescriptor


class OrganizationDataSource(DataSource):
    data_type: ClassVar[str] = "terrakube_organization"
    lookup: ClassVar[LookupDescriptor] = LookupDescriptor(
        wire_type="organization",
        collection_path="/api/v1/organization",
        outputs={"description": "description"},
    )


class OrganizationTagDataSource(DataSource):
    data_type: ClassVar[str] = "terrakube_organization_tag"
    lookup: ClassVar[LookupDescriptor] = LookupDescriptor(
        wire_type="tag",
        collection_path="/api/v1/organization/{organization_id}/tag",
    )

    organization_id: str


class OrganizationTemplateDataSource(DataSource):
    data_type: ClassVar[str] = "terrakube_organization_template"
    lookup: ClassVar[LookupDescriptor] = LookupDescriptor(
        wire_type="template",
        collection_path="/api/v1/organization/{organization_id}/template",
        outputs={"description": "description", "version": "version"},
        quote_name=True,
    )

    organization_id: str


class SshDataSource(DataSource):
    data_type: ClassVar[str] = "terrakube_ssh"
    lookup: ClassVar[LookupDescriptor] = LookupDescriptor(
        wire_type="ssh",
        collection_path="/api/v1/organization/{organization_id}/ssh",
        outputs={"description": "description"},
    )

    organization_id: str


class VcsDataSource(DataSource):
    data_type: ClassVar[str] = "terrakube_vcs"
    lookup: ClassVar[LookupDescriptor] = LookupDescriptor(
        wire_type="vcs",
        collection_path="/api/v1/organization/{organization_id}/vcs",
        outputs={"description": "description"},
    )

    organization_id: str
