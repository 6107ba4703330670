"""Terrakube provider - connection configuration for a Terrakube API."""

from functools import cached_property
from typing import Self

from pydantic import BaseModel, SecretStr

from terrakube_provisioner.core.transport import TerrakubeClient, build_session


class TerrakubeProvider(BaseModel):
    """Connection configuration for a Terrakube API endpoint.

    Built once from the resolved provider settings and passed to every
    handler through ``EngineContext``. For tests, use :meth:`from_client`
    to inject a client.

    Examples:
        provider = TerrakubeProvider(
            endpoint="https://terrakube-api.example.com",
            token=SecretStr("my-pat"),
        )
    """

    endpoint: str | None = None
    token: SecretStr | None = None
    insecure_http_client: bool = False

    # Injected client (for testing)
    _injected_client: TerrakubeClient | None = None

    @classmethod
    def from_client(cls, client: TerrakubeClient) -> Self:
        """Create a provider with an injected client."""
        provider = cls.model_construct()
        provider._injected_client = client
        return provider

    @cached_property
    def client(self) -> TerrakubeClient:
        """Get the API client."""
        if self._injected_client is not None:
            return self._injected_client

        if not self.endpoint or self.token is None:
            raise ValueError(
                "Either provide endpoint+token, or use TerrakubeProvider.from_client() "
                "to inject a client"
            )

        session = build_session(insecure_http_client=self.insecure_http_client)
        return TerrakubeClient(self.endpoint, self.token.get_secret_value(), session)
