"""Core infrastructure components for Terrakube Provisioner."""

from terrakube_provisioner.core.errors import (
    ApiStatusError,
    ImportIdError,
    MarshalError,
    NotFoundError,
    TerrakubeError,
    TransportError,
    UnmarshalError,
)
from terrakube_provisioner.core.provider import TerrakubeProvider
from terrakube_provisioner.core.state import ResourceInstance, State
from terrakube_provisioner.core.transport import TerrakubeClient

__all__ = [
    "ApiStatusError",
    "ImportIdError",
    "MarshalError",
    "NotFoundError",
    "ResourceInstance",
    "State",
    "TerrakubeClient",
    "TerrakubeError",
    "TerrakubeProvider",
    "TransportError",
    "UnmarshalError",
]
