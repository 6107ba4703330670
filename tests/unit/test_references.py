from __future__ import annotations

import pytest

from terrakube_provisioner.engine.errors import UnresolvedReferenceError
from terrakube_provisioner.engine.references import (
    KNOWN_AFTER_APPLY,
    Reference,
    find_references,
    resolve_references,
)

_VALUES = {
    "terrakube_organization.main": {"id": "org-1", "name": "main"},
    "data.terrakube_vcs.github": {"id": "vcs-1"},
    "terrakube_team.ops": {"id": None},
}


class TestFindReferences:
    def test_nested_and_deduplicated(self) -> None:
        value = {
            "a": "${terrakube_organization.main.id}",
            "b": ["x-${terrakube_organization.main.id}", "${data.terrakube_vcs.github.id}"],
        }
        assert find_references(value) == [
            Reference("terrakube_organization.main", "id"),
            Reference("data.terrakube_vcs.github", "id"),
        ]

    def test_data_flag(self) -> None:
        assert Reference("data.terrakube_vcs.github", "id").is_data
        assert not Reference("terrakube_vcs.github", "id").is_data

    def test_plain_strings_ignored(self) -> None:
        assert find_references({"a": "$notref", "b": "${broken"}) == []


class TestResolve:
    def test_whole_string_keeps_type(self) -> None:
        values = {"terrakube_team.ops": {"id": "t1", "manage_vcs": True}}
        assert resolve_references("${terrakube_team.ops.manage_vcs}", values) is True

    def test_embedded_is_interpolated(self) -> None:
        result = resolve_references("org/${terrakube_organization.main.name}/x", _VALUES)
        assert result == "org/main/x"

    def test_recurses_into_containers(self) -> None:
        result = resolve_references(
            {"ids": ["${terrakube_organization.main.id}", "${data.terrakube_vcs.github.id}"]},
            _VALUES,
        )
        assert result == {"ids": ["org-1", "vcs-1"]}

    @pytest.mark.parametrize(
        "ref",
        [
            "${terrakube_workspace_cli.missing.id}",
            "${terrakube_team.ops.id}",
            "prefix-${terrakube_organization.main.nope}",
        ],
    )
    def test_unknown_is_known_after_apply(self, ref: str) -> None:
        assert resolve_references(ref, _VALUES) == KNOWN_AFTER_APPLY

    def test_known_after_apply_propagates(self) -> None:
        values = {"terrakube_team.ops": {"id": KNOWN_AFTER_APPLY}}
        assert resolve_references("${terrakube_team.ops.id}", values) == KNOWN_AFTER_APPLY

    def test_strict_raises(self) -> None:
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            resolve_references("${terrakube_team.ops.id}", _VALUES, strict=True)
        assert exc_info.value.address == "terrakube_team.ops"
        assert exc_info.value.attr == "id"
