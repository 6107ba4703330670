"""Errors raised while talking to the Terrakube API."""

from __future__ import annotations


class TerrakubeError(Exception):
    """Base exception for API and provider errors."""


class MarshalError(TerrakubeError):
    """Raised when a request payload cannot be serialized."""


class TransportError(TerrakubeError):
    """Raised when the HTTP round trip itself fails (DNS, TLS, connection)."""


class ApiStatusError(TerrakubeError):
    """Raised when the API answers with an unexpected HTTP status.

    The message concatenates the status, the decoded error detail (when the
    body carries a JSON:API ``errors`` array) and the raw body.
    """

    def __init__(
        self,
        *,
        method: str,
        url: str,
        status_code: int,
        body: str,
        detail: str | None = None,
    ) -> None:
        self.method = method
        self.url = url
        self.status_code = status_code
        self.body = body
        self.detail = detail
        msg = f"{method} {url} returned status {status_code}"
        if detail:
            msg += f": {detail}"
        if body:
            msg += f" (response body: {body})"
        super().__init__(msg)


class NotFoundError(ApiStatusError):
    """Raised when the API answers 404."""


class UnmarshalError(TerrakubeError):
    """Raised when a response body cannot be decoded."""


class ImportIdError(TerrakubeError):
    """Raised when an import identifier does not match the expected format."""

    def __init__(self, raw: str, keys: tuple[str, ...]) -> None:
        self.raw = raw
        self.keys = keys
        expected = ",".join(keys)
        super().__init__(f"Expected import identifier with format '{expected}', got: {raw!r}")
