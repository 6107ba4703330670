"""JSON:API document helpers.

Covers the subset of JSON:API the Terrakube API speaks: single-resource
``data`` documents, ``data`` arrays for filtered lookups, relationship
linkage, ``errors`` arrays and the atomic-operations extension envelope.
"""

from __future__ import annotations

import html
import json
from typing import Any

from terrakube_provisioner.core.errors import UnmarshalError

ATOMIC_OPERATIONS = "atomic:operations"
ATOMIC_RESULTS = "atomic:results"


def decode(text: str) -> Any:
    """Decode a JSON response body."""
    try:
        return json.loads(text)
    except ValueError as exc:
        raise UnmarshalError(f"Unable to unmarshal response body: {exc}; body: {text!r}") from exc


def linkage(wire_type: str, resource_id: str) -> dict[str, Any]:
    """Relationship object pointing at a single resource."""
    return {"data": {"type": wire_type, "id": resource_id}}


def resource_document(
    wire_type: str,
    attributes: dict[str, Any],
    *,
    resource_id: str | None = None,
    relationships: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a single-resource ``{"data": {...}}`` document."""
    data: dict[str, Any] = {"type": wire_type}
    if resource_id is not None:
        data["id"] = resource_id
    data["attributes"] = attributes
    if relationships:
        data["relationships"] = relationships
    return {"data": data}


def _normalize(item: Any, text: str) -> dict[str, Any]:
    """Check one resource object and default its optional members."""
    if not isinstance(item, dict) or not item.get("id"):
        raise UnmarshalError(f"Response has a malformed resource object: {text!r}")
    for member in ("attributes", "relationships"):
        value = item.get(member)
        if value is None:
            item[member] = {}
        elif not isinstance(value, dict):
            raise UnmarshalError(f"Resource {member!r} is not an object: {text!r}")
    return item


def parse_resource(text: str) -> dict[str, Any]:
    """Extract the primary resource object from a single-resource document."""
    doc = decode(text)
    data = doc.get("data") if isinstance(doc, dict) else None
    if not isinstance(data, dict) or not data.get("id"):
        raise UnmarshalError(f"Response has no primary resource: {text!r}")
    return _normalize(data, text)


def parse_resources(text: str) -> list[dict[str, Any]]:
    """Extract the resource objects from a collection document."""
    doc = decode(text)
    data = doc.get("data") if isinstance(doc, dict) else None
    if not isinstance(data, list):
        raise UnmarshalError(f"Response has no resource collection: {text!r}")
    return [_normalize(item, text) for item in data]


def relationship_ids(resource: dict[str, Any], name: str) -> list[str]:
    """Ids linked through relationship *name* (to-one or to-many)."""
    rel = (resource.get("relationships") or {}).get(name) or {}
    data = rel.get("data") if isinstance(rel, dict) else None
    if data is None:
        return []
    if isinstance(data, dict):
        data = [data]
    return [item["id"] for item in data if isinstance(item, dict) and "id" in item]


def relationship_id(resource: dict[str, Any], name: str) -> str | None:
    ids = relationship_ids(resource, name)
    return ids[0] if ids else None


def atomic_operation(op: str, href: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    operation: dict[str, Any] = {"op": op, "href": href}
    if data is not None:
        operation["data"] = data
    return operation


def atomic_document(*operations: dict[str, Any]) -> dict[str, Any]:
    return {ATOMIC_OPERATIONS: list(operations)}


def atomic_result_id(text: str) -> str:
    """Return ``atomic:results[0].data.id``; an empty result list is an error."""
    doc = decode(text)
    results = doc.get(ATOMIC_RESULTS) if isinstance(doc, dict) else None
    if not results:
        raise UnmarshalError(f"Atomic operation returned no results: {text!r}")
    data = results[0].get("data") or {}
    result_id = data.get("id")
    if not result_id:
        raise UnmarshalError(f"Atomic operation result has no id: {text!r}")
    return result_id


def error_detail(text: str) -> str | None:
    """First ``errors[].detail`` of an error body, with HTML entities decoded.

    Returns ``None`` when the body is not a JSON:API error document.
    """
    try:
        doc = json.loads(text)
    except ValueError:
        return None
    if not isinstance(doc, dict):
        return None
    errors = doc.get("errors")
    if not isinstance(errors, list) or not errors or not isinstance(errors[0], dict):
        return None
    detail = errors[0].get("detail")
    if not isinstance(detail, str):
        return None
    return html.unescape(detail)
