"""Import identifier parsing."""

from __future__ import annotations

from terrakube_provisioner.core.errors import ImportIdError


def parse_import_id(raw: str, keys: tuple[str, ...]) -> dict[str, str]:
    """Split a comma-separated import identifier into named parts.

    ``parse_import_id("org-1,res-1", ("organization_id", "id"))`` returns
    ``{"organization_id": "org-1", "id": "res-1"}``. The number of parts must
    match *keys* exactly and no part may be empty.
    """
    parts = raw.split(",")
    if len(parts) != len(keys) or any(not p for p in parts):
        raise ImportIdError(raw, keys)
    return dict(zip(keys, parts, strict=True))
