from __future__ import annotations

import pytest

from terrakube_provisioner.core import jsonapi
from terrakube_provisioner.core.errors import UnmarshalError


class TestDocuments:
    def test_resource_document(self) -> None:
        doc = jsonapi.resource_document(
            "workspace",
            {"name": "ws"},
            resource_id="w1",
            relationships={"vcs": jsonapi.linkage("vcs", "v1")},
        )
        assert doc == {
            "data": {
                "type": "workspace",
                "id": "w1",
                "attributes": {"name": "ws"},
                "relationships": {"vcs": {"data": {"type": "vcs", "id": "v1"}}},
            }
        }

    def test_atomic_document(self) -> None:
        op = jsonapi.atomic_operation("remove", "/webhook/w1/events/e1")
        assert jsonapi.atomic_document(op) == {
            "atomic:operations": [{"op": "remove", "href": "/webhook/w1/events/e1"}]
        }


class TestParsing:
    def test_parse_resource_defaults_attributes(self) -> None:
        data = jsonapi.parse_resource('{"data": {"type": "tag", "id": "t1"}}')
        assert data["attributes"] == {}

    def test_parse_resource_requires_id(self) -> None:
        with pytest.raises(UnmarshalError):
            jsonapi.parse_resource('{"data": {"type": "tag"}}')

    def test_not_json(self) -> None:
        with pytest.raises(UnmarshalError):
            jsonapi.parse_resource("<html>")

    def test_parse_resources(self) -> None:
        items = jsonapi.parse_resources('{"data": [{"type": "tag", "id": "t1"}]}')
        assert [i["id"] for i in items] == ["t1"]

    def test_null_members_default_to_empty(self) -> None:
        data = jsonapi.parse_resource(
            '{"data": {"type": "webhook", "id": "h1", "attributes": null, "relationships": null}}'
        )
        assert data["attributes"] == {}
        assert jsonapi.relationship_ids(data, "events") == []

    @pytest.mark.parametrize(
        "text",
        [
            '{"data": ["t1"]}',
            '{"data": [{"type": "tag"}]}',
            '{"data": [{"type": "tag", "id": "t1", "attributes": []}]}',
        ],
    )
    def test_malformed_collection_item(self, text: str) -> None:
        with pytest.raises(UnmarshalError):
            jsonapi.parse_resources(text)

    def test_relationship_ids_without_relationships(self) -> None:
        assert jsonapi.relationship_ids({"relationships": None}, "events") == []

    def test_relationship_ids_to_many(self) -> None:
        res = {
            "relationships": {
                "events": {"data": [{"type": "webhook_event", "id": "e1"}, {"id": "e2"}]}
            }
        }
        assert jsonapi.relationship_ids(res, "events") == ["e1", "e2"]
        assert jsonapi.relationship_id(res, "workspace") is None


class TestAtomicResults:
    def test_first_result_id(self) -> None:
        text = '{"atomic:results": [{"data": {"type": "webhook", "id": "h1"}}]}'
        assert jsonapi.atomic_result_id(text) == "h1"

    def test_empty_results_is_error(self) -> None:
        with pytest.raises(UnmarshalError, match="no results"):
            jsonapi.atomic_result_id('{"atomic:results": []}')


class TestErrorDetail:
    def test_first_detail(self) -> None:
        body = '{"errors": [{"detail": "a &amp; b"}, {"detail": "other"}]}'
        assert jsonapi.error_detail(body) == "a & b"

    @pytest.mark.parametrize("body", ["", "not json", "[]", '{"errors": []}'])
    def test_not_an_error_document(self, body: str) -> None:
        assert jsonapi.error_detail(body) is None
