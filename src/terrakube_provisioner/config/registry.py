"""Default resource type registry factory."""

from __future__ import annotations

from terrakube_provisioner.engine.data_handler import DataSourceHandler
from terrakube_provisioner.engine.jsonapi_handler import JsonApiHandler, VcsHandler
from terrakube_provisioner.engine.registry import ResourceTypeRegistry
from terrakube_provisioner.engine.team_token_handler import TeamTokenHandler
from terrakube_provisioner.engine.webhook_handler import (
    WorkspaceWebhookEventHandler,
    WorkspaceWebhookV2Handler,
)
from terrakube_provisioner.resources import (
    CollectionItemResource,
    CollectionReferenceResource,
    CollectionResource,
    ModuleResource,
    OrganizationDataSource,
    OrganizationResource,
    OrganizationTagDataSource,
    OrganizationTagResource,
    OrganizationTemplateDataSource,
    OrganizationTemplateResource,
    OrganizationVariableResource,
    SelfHostedAgentResource,
    SshDataSource,
    SshResource,
    TeamResource,
    TeamTokenResource,
    VcsDataSource,
    VcsResource,
    WorkspaceAccessResource,
    WorkspaceCliResource,
    WorkspaceScheduleResource,
    WorkspaceTagResource,
    WorkspaceVariableResource,
    WorkspaceVcsResource,
    WorkspaceWebhookEventResource,
    WorkspaceWebhookResource,
    WorkspaceWebhookV2Resource,
)

# Resource types served by the generic JSON:API handler.
_JSON_API_MODELS = (
    OrganizationResource,
    OrganizationTagResource,
    OrganizationTemplateResource,
    OrganizationVariableResource,
    SelfHostedAgentResource,
    TeamResource,
    WorkspaceCliResource,
    WorkspaceVcsResource,
    WorkspaceTagResource,
    WorkspaceVariableResource,
    WorkspaceAccessResource,
    WorkspaceScheduleResource,
    WorkspaceWebhookResource,
    ModuleResource,
    CollectionResource,
    CollectionItemResource,
    CollectionReferenceResource,
    SshResource,
)

_DATA_SOURCE_MODELS = (
    OrganizationDataSource,
    OrganizationTagDataSource,
    OrganizationTemplateDataSource,
    SshDataSource,
    VcsDataSource,
)


def default_registry() -> ResourceTypeRegistry:
    """Create a fresh registry with all built-in resource and data source types."""
    registry = ResourceTypeRegistry()

    for model in _JSON_API_MODELS:
        registry.register(model, JsonApiHandler(model))
    registry.register(VcsResource, VcsHandler(VcsResource))
    registry.register(TeamTokenResource, TeamTokenHandler())
    registry.register(WorkspaceWebhookV2Resource, WorkspaceWebhookV2Handler())
    registry.register(WorkspaceWebhookEventResource, WorkspaceWebhookEventHandler())

    data_handler = DataSourceHandler()
    for data_model in _DATA_SOURCE_MODELS:
        registry.register_data(data_model, data_handler)

    return registry
