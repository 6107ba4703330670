from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import MagicMock

import pytest
import requests
from pydantic import SecretStr

from terrakube_provisioner.core import TerrakubeProvider
from terrakube_provisioner.core.errors import (
    ApiStatusError,
    MarshalError,
    NotFoundError,
    TransportError,
)
from terrakube_provisioner.core.transport import (
    ATOMIC_MEDIA_TYPE,
    JSON_MEDIA_TYPE,
    JSONAPI_MEDIA_TYPE,
    TerrakubeClient,
    build_session,
)

if TYPE_CHECKING:
    from conftest import Api


class TestRequestHeaders:
    def test_bearer_and_jsonapi_content_type(self, api: Api) -> None:
        api.queue(api.reply(200, {"data": []}))

        api.client.do("GET", "/api/v1/organization")

        headers = api.calls[0].kwargs["headers"]
        assert headers["Authorization"] == "Bearer tok"
        assert headers["Content-Type"] == JSONAPI_MEDIA_TYPE
        assert "Accept" not in headers

    def test_atomic_sets_accept(self, api: Api) -> None:
        api.queue(api.reply(200, {}))

        api.client.do("POST", "/api/v1/operations", body={}, media_type=ATOMIC_MEDIA_TYPE)

        headers = api.calls[0].kwargs["headers"]
        assert headers["Content-Type"] == ATOMIC_MEDIA_TYPE
        assert headers["Accept"] == ATOMIC_MEDIA_TYPE

    def test_plain_json(self, api: Api) -> None:
        api.queue(api.reply(200, []))

        api.client.do("GET", "/access-token/v1/teams", media_type=JSON_MEDIA_TYPE)

        assert api.calls[0].kwargs["headers"]["Content-Type"] == JSON_MEDIA_TYPE

    def test_url_joins_endpoint_and_path(self) -> None:
        client = TerrakubeClient("https://tk.example/", "t", MagicMock())
        assert client.url("/api/v1/organization") == "https://tk.example/api/v1/organization"
        assert client.url("api/v1/organization") == "https://tk.example/api/v1/organization"

    def test_body_is_json_encoded(self, api: Api) -> None:
        api.queue(api.reply(201, {}))

        api.client.do("POST", "/x", body={"a": 1})

        assert api.body(0) == {"a": 1}


class TestStatusHandling:
    def test_any_2xx_accepted_by_default(self, api: Api) -> None:
        api.queue(api.reply(204))
        assert api.client.do("DELETE", "/x").status_code == 204

    def test_expected_status_must_match_exactly(self, api: Api) -> None:
        api.queue(api.reply(200))
        with pytest.raises(ApiStatusError) as exc_info:
            api.client.do("DELETE", "/x", expected=204)
        assert exc_info.value.status_code == 200

    def test_404_raises_not_found(self, api: Api) -> None:
        api.queue(api.reply(404, "missing"))
        with pytest.raises(NotFoundError):
            api.client.do("GET", "/x")

    def test_error_detail_is_unescaped(self, api: Api) -> None:
        api.queue(api.reply(400, {"errors": [{"detail": "name &quot;x&quot; taken"}]}))
        with pytest.raises(ApiStatusError) as exc_info:
            api.client.do("POST", "/x", body={})
        exc = exc_info.value
        assert exc.detail == 'name "x" taken'
        assert "400" in str(exc)
        assert 'name "x" taken' in str(exc)

    def test_unparseable_error_body_kept_raw(self, api: Api) -> None:
        api.queue(api.reply(500, "<html>boom</html>"))
        with pytest.raises(ApiStatusError) as exc_info:
            api.client.do("GET", "/x")
        assert exc_info.value.detail is None
        assert "<html>boom</html>" in str(exc_info.value)

    def test_no_retry(self, api: Api) -> None:
        api.queue(api.reply(503), api.reply(200))
        with pytest.raises(ApiStatusError):
            api.client.do("GET", "/x")
        assert len(api.calls) == 1


class TestFailures:
    def test_request_exception_becomes_transport_error(self, api: Api) -> None:
        api.session.request.side_effect = requests.ConnectionError("no route")
        with pytest.raises(TransportError, match="no route"):
            api.client.do("GET", "/x")

    def test_unserializable_body(self, api: Api) -> None:
        with pytest.raises(MarshalError):
            api.client.do("POST", "/x", body={"bad": object()})
        api.session.request.assert_not_called()


class TestProvider:
    def test_insecure_session_skips_verification(self) -> None:
        assert build_session(insecure_http_client=True).verify is False
        assert build_session().verify is True

    def test_client_built_once(self) -> None:
        provider = TerrakubeProvider(endpoint="https://tk.example", token=SecretStr("t"))
        assert provider.client is provider.client
        assert provider.client.endpoint == "https://tk.example"

    def test_missing_credentials(self) -> None:
        with pytest.raises(ValueError, match="endpoint\\+token"):
            _ = TerrakubeProvider().client

    def test_injected_client(self) -> None:
        client = MagicMock()
        assert TerrakubeProvider.from_client(client).client is client
