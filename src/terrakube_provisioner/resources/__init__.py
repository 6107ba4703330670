"""Terrakube resource and data source definitions."""

from terrakube_provisioner.resources.base import (
    ApiDescriptor,
    DataSource,
    LookupDescriptor,
    Resource,
)
from terrakube_provisioner.resources.collection import (
    CollectionReferenceResource,
    CollectionResource,
)
from terrakube_provisioner.resources.connection import SshResource, VcsResource
from terrakube_provisioner.resources.data import (
    OrganizationDataSource,
    OrganizationTagDataSource,
    OrganizationTemplateDataSource,
    SshDataSource,
    VcsDataSource,
)
from terrakube_provisioner.resources.module import ModuleResource
from terrakube_provisioner.resources.organization import (
    OrganizationResource,
    OrganizationTagResource,
    OrganizationTemplateResource,
    SelfHostedAgentResource,
)
from terrakube_provisioner.resources.team import TeamResource, TeamTokenResource
from terrakube_provisioner.resources.variables import (
    CollectionItemResource,
    OrganizationVariableResource,
    WorkspaceVariableResource,
)
from terrakube_provisioner.resources.webhook import (
    WorkspaceWebhookEventResource,
    WorkspaceWebhookResource,
    WorkspaceWebhookV2Resource,
)
from terrakube_provisioner.resources.workspace import (
    WorkspaceAccessResource,
    WorkspaceCliResource,
    WorkspaceScheduleResource,
    WorkspaceTagResource,
    WorkspaceVcsResource,
)

__all__ = [
    "ApiDescriptor",
    "CollectionItemResource",
    "CollectionReferenceResource",
    "CollectionResource",
    "DataSource",
    "LookupDescriptor",
    "ModuleResource",
    "OrganizationDataSource",
    "OrganizationResource",
    "OrganizationTagDataSource",
    "OrganizationTagResource",
    "OrganizationTemplateDataSource",
    "OrganizationTemplateResource",
    "OrganizationVariableResource",
    "Resource",
    "SelfHostedAgentResource",
    "SshDataSource",
    "SshResource",
    "TeamResource",
    "TeamTokenResource",
    "VcsDataSource",
    "VcsResource",
    "WorkspaceAccessResource",
    "WorkspaceCliResource",
    "WorkspaceScheduleResource",
    "WorkspaceTagResource",
    "WorkspaceVariableResource",
    "WorkspaceVcsResource",
    "WorkspaceWebhookEventResource",
    "WorkspaceWebhookResource",
    "WorkspaceWebhookV2Resource",
]
