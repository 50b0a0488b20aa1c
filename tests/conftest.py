"""Shared fixtures: sample documents, credentials and a recording HTTP transport."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest

from openapi_mcp.loader import DocumentLoader
from openapi_mcp.models import Document

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def loader() -> DocumentLoader:
    return DocumentLoader()


@pytest.fixture
def petstore(loader) -> Document:
    return loader.load_from_file(FIXTURES / "petstore.yaml")


@pytest.fixture
def swagger(loader) -> Document:
    return loader.load_from_file(FIXTURES / "swagger.json")


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it receives."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content) if self.last.content else None


@pytest.fixture
def make_transport() -> Callable[..., RecordingTransport]:
    def _make(status: int = 200, payload: Any = None, **kwargs: Any) -> RecordingTransport:
        body: Dict[str, Any] = kwargs or {"json": payload if payload is not None else {"result": "success"}}
        return RecordingTransport(lambda request: httpx.Response(status, **body))

    return _make
