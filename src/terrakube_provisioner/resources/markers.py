"""Declarative field markers for resource models.

Four markers attach to Pydantic fields via ``Annotated``:

- ``Attr``     : field maps to a JSON:API attribute (with optional wire encoding
  and sensitivity)
- ``Rel``      : field holds the id of a to-one relationship
- ``PathKey``  : field fills a ``{placeholder}`` of the resource's URL template
- ``ForceNew`` : changing the field replaces the remote object

Helper functions introspect these markers to build request documents and to
map response resources back onto stored attributes.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, TypeAlias, TypeVar

from terrakube_provisioner.core import jsonapi
from terrakube_provisioner.core.errors import UnmarshalError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from pydantic.fields import FieldInfo

M = TypeVar("M")
Encoding: TypeAlias = Literal["base64", "csv"]


# ── Marker dataclasses ──────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Attr:
    """Field maps to the JSON:API attribute ``wire``.

    ``sensitive`` marks values the API never echoes back; the known value is
    always kept. ``sensitive_if`` names a boolean field of the same record:
    the known value is kept only while that flag, as returned by the API, is
    true.
    """

    wire: str
    sensitive: bool = False
    sensitive_if: str | None = None
    encoding: Encoding | None = None


@dataclass(frozen=True, slots=True)
class Rel:
    """Field holds the id of the to-one relationship ``name``."""

    name: str
    wire_type: str


@dataclass(frozen=True, slots=True)
class PathKey:
    """Field is part of the URL path (e.g. ``organization_id``)."""


@dataclass(frozen=True, slots=True)
class ForceNew:
    """A change to this field cannot be applied in place."""


# ── Shared introspection primitives ─────────────────────────────────


def _find_marker(field_info: FieldInfo, marker_type: type[M]) -> M | None:
    """Return the first marker of *marker_type* on a field, or ``None``."""
    return next((m for m in field_info.metadata if isinstance(m, marker_type)), None)


def _iter_marked_fields(
    model_or_cls: Any,
    marker_type: type[M],
) -> list[tuple[str, FieldInfo, M]]:
    """Return ``(field_name, field_info, marker)`` for every field carrying *marker_type*."""
    cls = model_or_cls if isinstance(model_or_cls, type) else type(model_or_cls)
    return [
        (name, fi, marker)
        for name, fi in cls.model_fields.items()
        if (marker := _find_marker(fi, marker_type)) is not None
    ]


def encode_value(value: Any, encoding: Encoding | None) -> Any:
    """Convert a model value to its wire form."""
    if value is None or encoding is None:
        return value
    if encoding == "base64":
        return base64.b64encode(value.encode("utf-8")).decode("ascii")
    return ",".join(value)


def decode_value(value: Any, encoding: Encoding | None) -> Any:
    """Convert a wire value back to its model form."""
    if value is None or encoding is None:
        return value
    if encoding == "base64":
        try:
            return base64.b64decode(value, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise UnmarshalError(f"Attribute is not valid base64: {exc}") from exc
    return [part for part in value.split(",") if part]


# ── Public helpers ──────────────────────────────────────────────────


def path_key_fields(resource_or_cls: Any) -> list[str]:
    return [name for name, _, _ in _iter_marked_fields(resource_or_cls, PathKey)]


def force_new_fields(resource_or_cls: Any) -> set[str]:
    return {name for name, _, _ in _iter_marked_fields(resource_or_cls, ForceNew)}


def relationship_fields(resource_or_cls: Any) -> list[tuple[str, Rel]]:
    return [(name, marker) for name, _, marker in _iter_marked_fields(resource_or_cls, Rel)]


def unmapped_fields(resource_or_cls: Any) -> list[str]:
    """Fields that are neither attributes nor relationships (path keys and the like)."""
    cls = resource_or_cls if isinstance(resource_or_cls, type) else type(resource_or_cls)
    return [
        name
        for name, fi in cls.model_fields.items()
        if _find_marker(fi, Attr) is None and _find_marker(fi, Rel) is None
    ]


def build_attributes(resource: Any) -> dict[str, Any]:
    """Wire attributes for every ``Attr`` field that is set."""
    return {
        marker.wire: encode_value(value, marker.encoding)
        for name, _, marker in _iter_marked_fields(resource, Attr)
        if (value := getattr(resource, name)) is not None
    }


def stored_attributes(resource_cls: type, attrs: Mapping[str, Any]) -> dict[str, Any]:
    """Wire attributes rebuilt from a stored record, skipping unset values."""
    return {
        marker.wire: encode_value(value, marker.encoding)
        for name, _, marker in _iter_marked_fields(resource_cls, Attr)
        if (value := attrs.get(name)) is not None
    }


def build_relationships(resource: Any) -> dict[str, Any]:
    """Relationship linkage for every ``Rel`` field that is set."""
    return {
        marker.name: jsonapi.linkage(marker.wire_type, value)
        for name, _, marker in _iter_marked_fields(resource, Rel)
        if (value := getattr(resource, name)) is not None
    }


def extract_attributes(
    resource_cls: type,
    data: dict[str, Any],
    known: dict[str, Any],
) -> dict[str, Any]:
    """Map a response resource object onto model field names.

    *known* holds the values the caller already has (desired config or prior
    state); sensitive fields are taken from it instead of the response.
    """
    wire_attrs = data.get("attributes") or {}
    attrs: dict[str, Any] = {}
    conditional: list[tuple[str, Attr]] = []
    for name, _, marker in _iter_marked_fields(resource_cls, Attr):
        if marker.sensitive:
            attrs[name] = known.get(name)
        elif marker.sensitive_if is not None:
            conditional.append((name, marker))
        else:
            attrs[name] = decode_value(wire_attrs.get(marker.wire), marker.encoding)

    # The flag itself comes from the response, so resolve it first.
    for name, marker in conditional:
        if attrs.get(marker.sensitive_if):
            attrs[name] = known.get(name)
        else:
            attrs[name] = decode_value(wire_attrs.get(marker.wire), marker.encoding)

    # Relationships the response leaves out are not known to have changed.
    relationships = data.get("relationships") or {}
    for name, _, marker in _iter_marked_fields(resource_cls, Rel):
        if marker.name in relationships:
            attrs[name] = jsonapi.relationship_id(data, marker.name)
        else:
            attrs[name] = known.get(name)
    return attrs


def sensitive_fields(resource_or_cls: Any, *records: Mapping[str, Any]) -> set[str]:
    """Fields whose values must not be displayed.

    Conditional fields count when their flag is true in any of *records*.
    """
    names: set[str] = set()
    for name, _, marker in _iter_marked_fields(resource_or_cls, Attr):
        if marker.sensitive or (
            marker.sensitive_if is not None
            and any(r.get(marker.sensitive_if) for r in records)
        ):
            names.add(name)
    return names
