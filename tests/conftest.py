"""Shared fakes for the updater tests: HTTP session, responses and host."""

from __future__ import annotations

import io
import json
import logging
import zipfile
from pathlib import Path
from typing import Any

import pytest
import requests


class FakeResponse:
    """Just enough of requests.Response for the clients under test."""

    def __init__(
        self,
        status_code: int = 200,
        json_body: Any = None,
        content: bytes | None = None,
        chunks: list[bytes] | None = None,
        headers: dict[str, str] | None = None,
        stream_error: Exception | None = None,
    ) -> None:
        self.status_code = status_code
        if content is None:
            content = json.dumps(json_body).encode() if json_body is not None else b""
        self.content = content
        self._chunks = chunks if chunks is not None else ([content] if content else [])
        self.headers = headers or {}
        self._stream_error = stream_error
        self.closed = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    @property
    def text(self) -> str:
        return self.content.decode()

    def json(self) -> Any:
        return json.loads(self.content)

    def iter_content(self, chunk_size: int = 1):
        for chunk in self._chunks:
            yield chunk
        if self._stream_error is not None:
            raise self._stream_error

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


class FakeSession:
    """Routes GETs by URL to queued responses or exceptions and records calls."""

    def __init__(self) -> None:
        self.routes: dict[str, list[Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.headers: dict[str, str] = {}

    def add(self, url: str, result: Any) -> None:
        self.routes.setdefault(url, []).append(result)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((url, kwargs))
        queue = self.routes.get(url)
        if not queue:
            raise requests.ConnectionError(f"no route for {url}")
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, Exception):
            raise result
        return result

    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]

    def close(self) -> None:
        pass


class FakeHost:
    """Plugin host with a settable version and config."""

    def __init__(self, plugins_dir: Path, version: str | None = None, auto_update: bool = True) -> None:
        self.plugins_dir = plugins_dir
        self.version = version
        self.config: dict[str, Any] = {
            "options": {"auto-update": auto_update, "verify-checksum": False}
        }
        self.logger = logging.getLogger("tests.host")

    def get_version(self) -> str | None:
        return self.version

    def get_config(self) -> dict[str, Any]:
        return self.config


def make_jar(version: Any, name: str = "NotEnoughAddons") -> bytes:
    """Build an in-memory plugin jar whose plugin.yml carries *version*."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as jar:
        jar.writestr("plugin.yml", f"name: {name}\nversion: {version}\nmain: me.fhoz.{name}\n")
    return buf.getvalue()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def plugins_dir(tmp_path: Path) -> Path:
    path = tmp_path / "plugins"
    path.mkdir()
    return path
