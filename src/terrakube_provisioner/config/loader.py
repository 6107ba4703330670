"""YAML configuration file loader."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import dotenv_values
from pydantic import BaseModel, ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.constructor import SafeConstructor

from terrakube_provisioner.config.registry import default_registry
from terrakube_provisioner.config.schema import Config
from terrakube_provisioner.engine.errors import UnknownResourceTypeError

if TYPE_CHECKING:
    from collections.abc import Callable

    from terrakube_provisioner.engine.registry import ResourceTypeRegistry

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised for configuration loading / validation errors."""


# Field name → environment variable.
_PROVIDER_ENV_MAP: dict[str, str] = {
    "endpoint": "TERRAKUBE_ENDPOINT",
    "token": "TERRAKUBE_TOKEN",
    "insecure_http_client": "TERRAKUBE_INSECURE_HTTP_CLIENT",
}

_PROVIDER_BOOL_FIELDS: frozenset[str] = frozenset({"insecure_http_client"})


def _resolve_provider(raw_provider: dict[str, Any], config_dir: Path) -> dict[str, Any]:
    """Resolve provider fields from YAML, env vars, and ``.env`` file.

    Priority (highest wins): YAML value > env var > ``.env`` file.
    """
    env_file = config_dir / ".env"
    dotenv_vals = dotenv_values(env_file, encoding="utf-8-sig") if env_file.is_file() else {}

    resolved: dict[str, Any] = {}
    for field, env_key in _PROVIDER_ENV_MAP.items():
        val = raw_provider.get(field)
        if val is None:
            val = os.environ.get(env_key)
        if val is None:
            val = dotenv_vals.get(env_key)
        if val is not None:
            if field in _PROVIDER_BOOL_FIELDS and isinstance(val, str):
                if val.lower() not in SafeConstructor.bool_values:
                    raise ConfigError(f"Invalid boolean for {env_key}: {val!r}")
                val = SafeConstructor.bool_values[val.lower()]
            resolved[field] = val

    return resolved


def _build_blocks(
    blocks: dict[str, Any],
    lookup: Callable[[str], type[BaseModel]],
    kind: str,
) -> tuple[list[Any], list[str]]:
    """Turn ``{type: {label: attrs}}`` blocks into models, collecting errors."""
    built: list[Any] = []
    errors: list[str] = []
    for type_name, by_label in blocks.items():
        try:
            model = lookup(type_name)
        except UnknownResourceTypeError:
            errors.append(f"Unknown {kind} type '{type_name}'")
            continue
        if not isinstance(by_label, dict):
            errors.append(f"{kind.capitalize()} block '{type_name}' must map labels to attributes")
            continue
        for label, attrs in by_label.items():
            try:
                built.append(model.model_validate({**(attrs or {}), "label": label}))
            except ValidationError as exc:
                errors.append(f"{type_name}.{label}: {exc}")
    return built, errors


def load_config(path: Path | str, registry: ResourceTypeRegistry | None = None) -> Config:
    """Load a YAML configuration file and return a ``Config`` object.

    Raises:
        ConfigError: On YAML parse errors, unknown types, or validation failures.
    """
    path = Path(path)
    registry = registry or default_registry()

    try:
        raw = YAML(typ="safe").load(path)
    except Exception as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    try:
        raw["provider"] = _resolve_provider(raw.get("provider") or {}, path.parent)
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    config.config_dir = path.parent

    resources, errors = _build_blocks(
        config.resources, lambda t: registry.get(t).model, "resource"
    )
    data_sources, data_errors = _build_blocks(
        config.data, lambda t: registry.get_data(t).model, "data source"
    )
    errors.extend(data_errors)
    if errors:
        raise ConfigError("\n".join(errors))

    config._resources = resources
    config._data_sources = data_sources

    logger.info(
        "Loaded config from %s (%d resources, %d data sources)",
        path,
        len(resources),
        len(data_sources),
    )
    return config
