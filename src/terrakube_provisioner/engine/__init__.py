"""Plan and apply engine for Terrakube resources."""

from terrakube_provisioner.engine.data_handler import DataSourceHandler, DataSourceNotFoundError
from terrakube_provisioner.engine.engine import TerrakubeEngine
from terrakube_provisioner.engine.errors import (
    ApplyCanceled,
    ApplyError,
    DependencyCycleError,
    DuplicateAddressError,
    EngineError,
    ResourceImportError,
    StalePlanError,
    StateEndpointMismatchError,
    StateLockError,
    UnknownResourceTypeError,
    UnresolvedReferenceError,
    ValidationError,
)
from terrakube_provisioner.engine.handlers import EngineContext, PlanContext, ResourceHandler
from terrakube_provisioner.engine.imports import parse_import_id
from terrakube_provisioner.engine.jsonapi_handler import JsonApiHandler, VcsHandler
from terrakube_provisioner.engine.references import KNOWN_AFTER_APPLY
from terrakube_provisioner.engine.registry import (
    DataSourceRegistration,
    ResourceTypeRegistration,
    ResourceTypeRegistry,
)
from terrakube_provisioner.engine.team_token_handler import TeamTokenHandler
from terrakube_provisioner.engine.types import (
    Action,
    ApplyResult,
    Plan,
    PlanMetadata,
    ResourceChange,
)
from terrakube_provisioner.engine.webhook_handler import (
    WorkspaceWebhookEventHandler,
    WorkspaceWebhookV2Handler,
)

__all__ = [
    "KNOWN_AFTER_APPLY",
    "Action",
    "ApplyCanceled",
    "ApplyError",
    "ApplyResult",
    "DataSourceHandler",
    "DataSourceNotFoundError",
    "DataSourceRegistration",
    "DependencyCycleError",
    "DuplicateAddressError",
    "EngineContext",
    "EngineError",
    "JsonApiHandler",
    "Plan",
    "PlanContext",
    "PlanMetadata",
    "ResourceChange",
    "ResourceHandler",
    "ResourceImportError",
    "ResourceTypeRegistration",
    "ResourceTypeRegistry",
    "StalePlanError",
    "StateEndpointMismatchError",
    "StateLockError",
    "TeamTokenHandler",
    "TerrakubeEngine",
    "UnknownResourceTypeError",
    "UnresolvedReferenceError",
    "ValidationError",
    "VcsHandler",
    "WorkspaceWebhookEventHandler",
    "WorkspaceWebhookV2Handler",
    "parse_import_id",
]
