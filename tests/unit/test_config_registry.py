"""Tests for the default resource type registry factory."""

from __future__ import annotations

from terrakube_provisioner.config.registry import default_registry
from terrakube_provisioner.engine.data_handler import DataSourceHandler
from terrakube_provisioner.engine.jsonapi_handler import JsonApiHandler, VcsHandler
from terrakube_provisioner.engine.team_token_handler import TeamTokenHandler
from terrakube_provisioner.engine.webhook_handler import (
    WorkspaceWebhookEventHandler,
    WorkspaceWebhookV2Handler,
)

_JSON_API_TYPES = [
    "terrakube_organization",
    "terrakube_organization_tag",
    "terrakube_organization_template",
    "terrakube_organization_variable",
    "terrakube_self_hosted_agent",
    "terrakube_team",
    "terrakube_workspace_cli",
    "terrakube_workspace_vcs",
    "terrakube_workspace_tag",
    "terrakube_workspace_variable",
    "terrakube_workspace_access",
    "terrakube_workspace_schedule",
    "terrakube_workspace_webhook",
    "terrakube_module",
    "terrakube_collection",
    "terrakube_collection_item",
    "terrakube_collection_reference",
    "terrakube_ssh",
]


class TestDefaultRegistry:
    def test_json_api_types_registered(self) -> None:
        registry = default_registry()
        for rt in _JSON_API_TYPES:
            reg = registry.get(rt)
            assert type(reg.handler) is JsonApiHandler, rt
            assert reg.handler.model is reg.model

    def test_special_handlers(self) -> None:
        registry = default_registry()
        assert isinstance(registry.get("terrakube_vcs").handler, VcsHandler)
        assert isinstance(registry.get("terrakube_team_token").handler, TeamTokenHandler)
        assert isinstance(
            registry.get("terrakube_workspace_webhook_v2").handler, WorkspaceWebhookV2Handler
        )
        assert isinstance(
            registry.get("terrakube_workspace_webhook_event").handler,
            WorkspaceWebhookEventHandler,
        )

    def test_resource_type_count(self) -> None:
        assert len(default_registry().resource_types()) == len(_JSON_API_TYPES) + 4

    def test_data_sources_registered(self) -> None:
        registry = default_registry()
        assert registry.data_types() == [
            "terrakube_organization",
            "terrakube_organization_tag",
            "terrakube_organization_template",
            "terrakube_ssh",
            "terrakube_vcs",
        ]
        for dt in registry.data_types():
            assert isinstance(registry.get_data(dt).handler, DataSourceHandler)

    def test_fresh_registry_each_call(self) -> None:
        assert default_registry() is not default_registry()
