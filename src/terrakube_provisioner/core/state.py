"""Local state file tracking the Terrakube objects under management."""

import contextlib
import hashlib
import json
import logging
import os
import tempfile
import uuid
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


def _canonical_json(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)


def compute_attributes_hash(attrs: Mapping[str, Any]) -> str:
    """Stable SHA-256 of a resource's stored attributes."""
    return hashlib.sha256(_canonical_json(attrs).encode("utf-8")).hexdigest()


class ResourceInstance(BaseModel):
    """One managed object as recorded after its last create/update/read.

    Attributes:
        address: Resource address (e.g., "terrakube_workspace_cli.sample")
        resource_type: Resource type (e.g., "terrakube_workspace_cli")
        label: Label given to the resource in the configuration (e.g., "sample")
        attributes: Stored attributes: server id, path keys, model fields and
            server-computed values
        attributes_hash: SHA-256 of ``attributes``
        dependencies: Addresses this resource depended on when last applied
    """

    address: str
    resource_type: str
    label: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    attributes_hash: str = ""
    dependencies: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def resource_id(self) -> str | None:
        """Server-assigned identifier, once the object exists."""
        return self.attributes.get("id")


class State(BaseModel):
    """Terraform-style state for one Terrakube endpoint.

    ``serial`` increases on every write and ``lineage`` identifies the state
    file across its lifetime; together with :func:`compute_state_digest`
    they let ``apply`` reject plans computed against a different state.
    """

    version: int = 1
    endpoint: str
    serial: int = 0
    lineage: str = Field(default_factory=lambda: str(uuid.uuid4()))
    resources: dict[str, ResourceInstance] = Field(default_factory=dict)

    def save(self, path: Path) -> None:
        """Write state atomically, keeping the previous file as ``<path>.backup``."""
        path.parent.mkdir(parents=True, exist_ok=True)

        with contextlib.suppress(FileNotFoundError):
            Path(f"{path}.backup").write_bytes(path.read_bytes())

        content = json.dumps(self.model_dump(mode="json"), indent=2, sort_keys=True) + "\n"
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            tmp_path.replace(path)
        finally:
            with contextlib.suppress(FileNotFoundError):
                tmp_path.unlink()
        logger.debug("State saved: serial=%d path=%s", self.serial, path)

    @classmethod
    def load(cls, path: Path) -> "State":
        state = cls.model_validate_json(path.read_text(encoding="utf-8"))
        logger.debug("State loaded from %s", path)
        return state

    @classmethod
    def load_or_create(cls, path: Path, endpoint: str) -> "State":
        """Load the state at *path*, or start an empty one for *endpoint*."""
        if path.exists():
            return cls.load(path)
        logger.debug("Starting new state for %s", endpoint)
        return cls(endpoint=endpoint)

    def attribute(self, address: str, attr: str) -> Any:
        """Stored attribute of a managed resource, or ``None`` if unknown."""
        inst = self.resources.get(address)
        if inst is None:
            return None
        return inst.attributes.get(attr)


def compute_state_digest(state: State) -> str:
    """Digest of everything in *state* except timestamps.

    Timestamps change on refresh without changing what a plan depends on.
    """
    resources = [
        {
            "address": address,
            "resource_type": inst.resource_type,
            "label": inst.label,
            "attributes_hash": inst.attributes_hash,
            "dependencies": sorted(inst.dependencies),
        }
        for address, inst in sorted(state.resources.items())
    ]
    digestable = {
        "version": state.version,
        "endpoint": state.endpoint,
        "lineage": state.lineage,
        "serial": state.serial,
        "resources": resources,
    }
    return hashlib.sha256(_canonical_json(digestable).encode("utf-8")).hexdigest()
