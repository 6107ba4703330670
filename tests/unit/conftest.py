"""Shared fixtures for unit tests."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from unittest.mock import MagicMock

import pytest

from terrakube_provisioner.config import load
from terrakube_provisioner.core import TerrakubeProvider
from terrakube_provisioner.core.transport import TerrakubeClient
from terrakube_provisioner.engine.handlers import EngineContext

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from terrakube_provisioner.config.schema import Config

_TERRAKUBE_ENV_VARS = (
    "TERRAKUBE_ENDPOINT",
    "TERRAKUBE_TOKEN",
    "TERRAKUBE_INSECURE_HTTP_CLIENT",
    "TERRAKUBE_LOG",
)


@pytest.fixture(autouse=True)
def _clean_terrakube_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove TERRAKUBE_* env vars so unit tests don't pick up a real endpoint."""
    for var in _TERRAKUBE_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


class Api:
    """A real client over a mocked ``requests.Session``.

    Tests queue canned responses and then inspect the requests made.
    """

    endpoint = "https://terrakube.test"

    def __init__(self) -> None:
        self.session = MagicMock()
        self.client = TerrakubeClient(self.endpoint, "tok", self.session)
        self.provider = TerrakubeProvider.from_client(self.client)
        self.ctx = EngineContext(provider=self.provider)

    @staticmethod
    def reply(status: int = 200, body: Any = None) -> MagicMock:
        resp = MagicMock()
        resp.status_code = status
        if body is None:
            resp.text = ""
        elif isinstance(body, str):
            resp.text = body
        else:
            resp.text = json.dumps(body)
        return resp

    @staticmethod
    def resource(
        wire_type: str, rid: str, attributes: dict[str, Any] | None = None, **rels: Any
    ) -> dict[str, Any]:
        data: dict[str, Any] = {"type": wire_type, "id": rid, "attributes": attributes or {}}
        if rels:
            data["relationships"] = {
                name: {"data": value} for name, value in rels.items()
            }
        return {"data": data}

    def queue(self, *responses: MagicMock) -> None:
        self.session.request.side_effect = list(responses)

    @property
    def calls(self) -> list[Any]:
        return self.session.request.call_args_list

    def requests(self) -> list[tuple[str, str]]:
        """``(method, path)`` of every request made, in order."""
        return [(c.args[0], c.args[1].removeprefix(self.endpoint)) for c in self.calls]

    def body(self, index: int) -> Any:
        """Decoded JSON body of the *index*-th request."""
        return json.loads(self.calls[index].kwargs["data"])


@pytest.fixture
def api() -> Api:
    return Api()


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory fixture: write YAML + optional .env, return loaded Config."""

    def _make(yaml_str: str, *, dotenv: str | None = None) -> Config:
        (tmp_path / "terrakube.yaml").write_text(yaml_str)
        if dotenv is not None:
            (tmp_path / ".env").write_text(dotenv)
        return load(tmp_path / "terrakube.yaml")

    return _make
