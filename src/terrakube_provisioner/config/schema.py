"""Configuration models for YAML-based provisioning."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PrivateAttr, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from terrakube_provisioner.resources.base import DataSource, Resource


class ProviderConfig(BaseSettings):
    """Terrakube API connection settings.

    Fields can be set via YAML (constructor kwargs) or environment variables
    with the ``TERRAKUBE_`` prefix.  Constructor kwargs take precedence.

    ``token`` is typically provided via the ``TERRAKUBE_TOKEN`` environment
    variable rather than YAML to avoid committing secrets to version control.
    """

    model_config = SettingsConfigDict(env_prefix="TERRAKUBE_")

    endpoint: str | None = None
    token: SecretStr | None = None
    insecure_http_client: bool = False


def _none_to_dict(v: Any) -> Any:
    return v if v is not None else {}


# type -> label -> attributes
Blocks = Annotated[dict[str, Any], BeforeValidator(_none_to_dict)]


class Config(BaseModel):
    """Provisioning configuration.

    ``resources`` and ``data`` hold the raw ``{type: {label: attributes}}``
    blocks from YAML; the loader turns them into typed models, available as
    :attr:`resource_list` and :attr:`data_sources`.
    """

    model_config = ConfigDict(extra="forbid")

    provider: ProviderConfig
    state_path: Path = Path(".terrakube-state.json")
    resources: Blocks = Field(default_factory=dict)
    data: Blocks = Field(default_factory=dict)
    config_dir: Path = Path()

    _resources: list[Resource] = PrivateAttr(default_factory=list)
    _data_sources: list[DataSource] = PrivateAttr(default_factory=list)

    @property
    def resource_list(self) -> list[Resource]:
        """All declared resources; ordering is not significant."""
        return list(self._resources)

    @property
    def data_sources(self) -> list[DataSource]:
        return list(self._data_sources)
