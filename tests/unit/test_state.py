from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

from terrakube_provisioner.core.state import (
    ResourceInstance,
    State,
    compute_attributes_hash,
    compute_state_digest,
)

ENDPOINT = "https://terrakube.test"


def _instance(**attrs: object) -> ResourceInstance:
    return ResourceInstance(
        address="terrakube_team.ops",
        resource_type="terrakube_team",
        label="ops",
        attributes=dict(attrs),
        attributes_hash=compute_attributes_hash(attrs),
    )


def test_state_digest_excludes_timestamps() -> None:
    t0 = datetime(2020, 1, 1, tzinfo=UTC)
    inst = _instance(id="team-1", organization_id="org-1")
    inst.created_at = inst.updated_at = t0
    state = State(endpoint=ENDPOINT, resources={inst.address: inst})
    d0 = compute_state_digest(state)

    inst.created_at = inst.updated_at = t0 + timedelta(days=1)

    assert compute_state_digest(state) == d0


def test_state_digest_includes_serial_lineage_and_attributes() -> None:
    state = State(endpoint=ENDPOINT)
    d0 = compute_state_digest(state)

    state.serial += 1
    assert compute_state_digest(state) != d0

    state.serial = 0
    state.lineage = "different"
    assert compute_state_digest(state) != d0

    other = State(endpoint=ENDPOINT, lineage=state.lineage)
    other.resources["terrakube_team.ops"] = _instance(id="team-1")
    assert compute_state_digest(other) != compute_state_digest(state)


def test_attributes_hash_is_order_independent() -> None:
    assert compute_attributes_hash({"a": 1, "b": 2}) == compute_attributes_hash({"b": 2, "a": 1})


def test_save_and_load_round_trip_with_backup(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "state.json"
    state = State(endpoint=ENDPOINT)
    state.resources["terrakube_team.ops"] = _instance(id="team-1")

    state.save(path)
    assert not Path(f"{path}.backup").exists()

    loaded = State.load(path)
    assert loaded.lineage == state.lineage
    assert loaded.resources["terrakube_team.ops"].resource_id == "team-1"

    loaded.serial = 5
    loaded.save(path)

    backup = json.loads(Path(f"{path}.backup").read_text(encoding="utf-8"))
    assert backup["serial"] == 0
    assert State.load(path).serial == 5
    assert [p.name for p in path.parent.iterdir() if p.name.startswith(".state.json.")] == []


def test_load_or_create(tmp_path: Path) -> None:
    path = tmp_path / "state.json"

    fresh = State.load_or_create(path, endpoint=ENDPOINT)
    assert fresh.endpoint == ENDPOINT
    assert fresh.serial == 0
    assert not path.exists()

    fresh.serial = 3
    fresh.save(path)
    assert State.load_or_create(path, endpoint="ignored").serial == 3


def test_attribute_lookup() -> None:
    state = State(endpoint=ENDPOINT, resources={"terrakube_team.ops": _instance(id="team-1")})

    assert state.attribute("terrakube_team.ops", "id") == "team-1"
    assert state.attribute("terrakube_team.ops", "missing") is None
    assert state.attribute("terrakube_team.none", "id") is None


def test_resource_id_absent_before_create() -> None:
    assert _instance().resource_id is None
