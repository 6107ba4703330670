"""Handler for data sources: name lookups against a filtered collection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from terrakube_provisioner.core import jsonapi
from terrakube_provisioner.core.errors import TerrakubeError

if TYPE_CHECKING:
    from terrakube_provisioner.engine.handlers import EngineContext
    from terrakube_provisioner.resources.base import DataSource

logger = logging.getLogger(__name__)


class DataSourceNotFoundError(TerrakubeError):
    """Raised when a lookup matches nothing."""


class DataSourceHandler:
    """Read one existing object by name.

    The first match wins. The result holds ``id``, the configured inputs and
    the data source's declared outputs.
    """

    def read(self, ctx: EngineContext, source: DataSource) -> dict[str, Any]:
        lookup = source.lookup
        inputs = source.model_dump(exclude={"label", "address"})
        resp = ctx.client.do(
            "GET",
            lookup.collection_path.format(**inputs),
            params=lookup.filter_params(source.name),
        )
        matches = jsonapi.parse_resources(resp.text)
        if not matches:
            raise DataSourceNotFoundError(
                f"{source.address}: no {lookup.wire_type} named {source.name!r}"
            )

        found = matches[0]
        result: dict[str, Any] = {"id": found["id"], **inputs}
        wire_attrs = found.get("attributes", {})
        for name, wire in lookup.outputs.items():
            result[name] = wire_attrs.get(wire)
        logger.debug("Read %s (id=%s)", source.address, found["id"])
        return result
