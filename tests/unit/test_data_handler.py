from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from terrakube_provisioner.engine.data_handler import DataSourceHandler, DataSourceNotFoundError
from terrakube_provisioner.resources import (
    OrganizationDataSource,
    OrganizationTemplateDataSource,
    VcsDataSource,
)

if TYPE_CHECKING:
    from conftest import Api


class TestDataSourceRead:
    def test_filters_by_name(self, api: Api) -> None:
        api.queue(
            api.reply(
                200,
                {
                    "data": [
                        {"type": "organization", "id": "org-1", "attributes": {"description": "d"}}
                    ]
                },
            )
        )

        result = DataSourceHandler().read(
            api.ctx, OrganizationDataSource(label="main", name="simple")
        )

        assert api.requests() == [("GET", "/api/v1/organization")]
        assert api.calls[0].kwargs["params"] == {"filter[organization]": "name==simple"}
        assert result == {"id": "org-1", "name": "simple", "description": "d"}

    def test_template_name_is_quoted(self, api: Api) -> None:
        api.queue(api.reply(200, {"data": [{"type": "template", "id": "t1"}]}))

        result = DataSourceHandler().read(
            api.ctx,
            OrganizationTemplateDataSource(label="plan", organization_id="org-1", name="Plan"),
        )

        assert api.requests() == [("GET", "/api/v1/organization/org-1/template")]
        assert api.calls[0].kwargs["params"] == {"filter[template]": "name=='Plan'"}
        assert result["id"] == "t1"
        assert result["organization_id"] == "org-1"
        assert result["version"] is None

    def test_first_match_wins(self, api: Api) -> None:
        api.queue(
            api.reply(200, {"data": [{"type": "vcs", "id": "v1"}, {"type": "vcs", "id": "v2"}]})
        )

        result = DataSourceHandler().read(
            api.ctx, VcsDataSource(label="gh", organization_id="o", name="github")
        )

        assert result["id"] == "v1"

    def test_no_match(self, api: Api) -> None:
        api.queue(api.reply(200, {"data": []}))

        with pytest.raises(DataSourceNotFoundError, match="data.terrakube_organization.main"):
            DataSourceHandler().read(api.ctx, OrganizationDataSource(label="main", name="x"))
