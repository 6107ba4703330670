"""HTTP transport shared by every handler.

One ``requests.Session`` is built when the provider is configured and wrapped
in a :class:`TerrakubeClient`. Handlers never build their own sessions; they
go through ``ctx.provider.client``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from terrakube_provisioner.core.errors import (
    ApiStatusError,
    MarshalError,
    NotFoundError,
    TransportError,
)
from terrakube_provisioner.core.jsonapi import error_detail

logger = logging.getLogger(__name__)

JSONAPI_MEDIA_TYPE = "application/vnd.api+json"
ATOMIC_MEDIA_TYPE = 'application/vnd.api+json;ext="https://jsonapi.org/ext/atomic"'
JSON_MEDIA_TYPE = "application/json"


def build_session(*, insecure_http_client: bool = False) -> requests.Session:
    """Create the HTTP session, optionally without TLS certificate verification."""
    session = requests.Session()
    if insecure_http_client:
        logger.warning("TLS certificate verification is disabled for the Terrakube API")
        session.verify = False
    return session


class TerrakubeClient:
    """Authenticated access to a Terrakube API endpoint."""

    def __init__(self, endpoint: str, token: str, session: requests.Session) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._token = token
        self._session = session

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def url(self, path: str) -> str:
        return f"{self._endpoint}/{path.lstrip('/')}"

    def do(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: dict[str, str] | None = None,
        media_type: str | None = JSONAPI_MEDIA_TYPE,
        expected: int | None = None,
    ) -> requests.Response:
        """Issue one request and check its status.

        ``expected=None`` accepts any 2xx status; otherwise the status must
        match exactly. Nothing is retried.

        Raises:
            MarshalError: *body* is not JSON-serializable.
            TransportError: the round trip failed.
            NotFoundError: the API answered 404.
            ApiStatusError: any other unexpected status.
        """
        url = self.url(path)
        headers = {"Authorization": f"Bearer {self._token}"}
        if media_type is not None:
            headers["Content-Type"] = media_type
        if media_type == ATOMIC_MEDIA_TYPE:
            headers["Accept"] = ATOMIC_MEDIA_TYPE

        data = None
        if body is not None:
            try:
                data = json.dumps(body)
            except (TypeError, ValueError) as exc:
                raise MarshalError(f"Unable to marshal request for {method} {url}: {exc}") from exc

        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(
                method, url, headers=headers, data=data, params=params
            )
        except requests.RequestException as exc:
            raise TransportError(f"Error executing {method} {url}: {exc}") from exc
        logger.debug("%s %s -> %d", method, url, response.status_code)

        ok = (
            200 <= response.status_code < 300
            if expected is None
            else response.status_code == expected
        )
        if not ok:
            error_cls = NotFoundError if response.status_code == 404 else ApiStatusError
            raise error_cls(
                method=method,
                url=url,
                status_code=response.status_code,
                body=response.text,
                detail=error_detail(response.text),
            )
        return response
