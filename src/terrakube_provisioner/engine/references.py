"""``${address.attr}`` references between resources and data sources.

A configuration value such as ``${terrakube_organization.main.id}`` or
``${data.terrakube_vcs.github.id}`` stands for an attribute of another
object. A string that is exactly one reference resolves to the referenced
value with its type preserved; references embedded in a longer string are
interpolated as text.

The engine uses these helpers twice: at plan time against state and the
values planned so far (unknown values become :data:`KNOWN_AFTER_APPLY`), and
at apply time against live state, where every reference must resolve.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from terrakube_provisioner.engine.errors import UnresolvedReferenceError

if TYPE_CHECKING:
    from collections.abc import Mapping

KNOWN_AFTER_APPLY = "(known after apply)"

_REFERENCE = re.compile(
    r"\$\{((?:data\.)?[A-Za-z_][A-Za-z0-9_]*\.[A-Za-z_][A-Za-z0-9_-]*)\.([A-Za-z_][A-Za-z0-9_]*)\}"
)


@dataclass(frozen=True)
class Reference:
    address: str
    attr: str

    @property
    def is_data(self) -> bool:
        return self.address.startswith("data.")


def find_references(value: Any) -> list[Reference]:
    """All references inside *value*, recursively, in first-seen order."""
    found: dict[Reference, None] = {}
    _collect(value, found)
    return list(found)


def _collect(value: Any, found: dict[Reference, None]) -> None:
    if isinstance(value, str):
        for m in _REFERENCE.finditer(value):
            found.setdefault(Reference(m.group(1), m.group(2)), None)
    elif isinstance(value, dict):
        for v in value.values():
            _collect(v, found)
    elif isinstance(value, list):
        for v in value:
            _collect(v, found)


class _Unknown(Exception):
    pass


def resolve_references(
    value: Any,
    values: Mapping[str, Mapping[str, Any]],
    *,
    strict: bool = False,
) -> Any:
    """Replace references in *value*, recursively.

    *values* maps an address to the attributes known for it. When a target
    or attribute is missing, the result is :data:`KNOWN_AFTER_APPLY`, or
    :class:`UnresolvedReferenceError` is raised when *strict* is set.
    """
    if isinstance(value, str):
        return _resolve_string(value, values, strict=strict)
    if isinstance(value, dict):
        return {k: resolve_references(v, values, strict=strict) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_references(v, values, strict=strict) for v in value]
    return value


def _lookup(
    address: str, attr: str, values: Mapping[str, Mapping[str, Any]], *, strict: bool
) -> Any:
    result = (values.get(address) or {}).get(attr)
    if result is None or result == KNOWN_AFTER_APPLY:
        if strict:
            raise UnresolvedReferenceError(address, attr)
        raise _Unknown
    return result


def _resolve_string(
    value: str, values: Mapping[str, Mapping[str, Any]], *, strict: bool
) -> Any:
    whole = _REFERENCE.fullmatch(value)
    try:
        if whole is not None:
            return _lookup(whole.group(1), whole.group(2), values, strict=strict)
        return _REFERENCE.sub(
            lambda m: str(_lookup(m.group(1), m.group(2), values, strict=strict)), value
        )
    except _Unknown:
        return KNOWN_AFTER_APPLY
