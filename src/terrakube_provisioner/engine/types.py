"""Engine types (plan, changes, metadata)."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class Action(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    NOOP = "no-op"


class PlanMetadata(BaseModel):
    endpoint: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    destroy: bool
    refresh: bool
    state_lineage: str
    state_serial: int
    state_digest: str
    config_digest: str
    engine_version: str


class ResourceChange(BaseModel):
    address: str
    resource_type: str
    action: Action
    desired: dict[str, Any] | None = None
    prior: dict[str, Any] | None = None
    planned: dict[str, Any] | None = None
    diff: dict[str, Any] | None = None
    replace_fields: list[str] | None = None


class Plan(BaseModel):
    """A saved set of changes.

    ``data`` holds what each data source returned while planning; apply
    resolves ``${data....}`` references from it rather than re-reading.
    """

    metadata: PlanMetadata
    changes: list[ResourceChange]
    data: dict[str, dict[str, Any]] = Field(default_factory=dict)

    def summary(self) -> dict[str, int]:
        counts = {a.value: 0 for a in Action}
        for c in self.changes:
            counts[c.action.value] += 1
        return counts

    def has_changes(self) -> bool:
        return any(c.action != Action.NOOP for c in self.changes)

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    @classmethod
    def load(cls, path: Path) -> Plan:
        path = Path(path)
        return cls.model_validate_json(path.read_text(encoding="utf-8"))


class ApplyResult(BaseModel):
    applied: list[ResourceChange] = Field(default_factory=list)

    def summary(self) -> dict[str, int]:
        counts = {a.value: 0 for a in Action}
        for c in self.applied:
            counts[c.action.value] += 1
        return counts
