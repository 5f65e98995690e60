"""Pytest configuration and shared fixtures for all tests."""

import json
from typing import Any, Dict, List, Union
from unittest.mock import Mock

import pytest
import requests

from oss_resolver.cache import DocumentCache

CONFIG_ENV_VARS = [
    "OSS_RESOLVER_DOWNLOAD_DIR",
    "OSS_RESOLVER_TIMEOUT",
    "OSS_RESOLVER_MAX_WORKERS",
    "NPM_REGISTRY_URL",
    "NUGET_API_URL",
    "HACKAGE_URL",
    "PYPI_URL",
]


def make_response(status_code: int = 200, body: bytes = b"", content_type: str = "application/json") -> Mock:
    """Create a mock requests.Response."""
    response = Mock()
    response.status_code = status_code
    response.content = body
    response.headers = {"Content-Type": content_type}
    return response


class FakeRegistry:
    """
    A Mock(spec=requests.Session) answering GETs from a URL map.

    Unknown URLs answer HTTP 404. Every request is recorded on the mock, so
    tests can count network calls per URL.
    """

    def __init__(self) -> None:
        self.responses: Dict[str, Union[Mock, Exception]] = {}
        self.session = Mock(spec=requests.Session)
        self.session.get.side_effect = self._get

    def _get(self, url: str, **kwargs: Any) -> Mock:
        response = self.responses.get(url)
        if response is None:
            return make_response(404, b"Not Found", "text/plain")
        if isinstance(response, Exception):
            raise response
        return response

    def add_json(self, url: str, data: Any, status_code: int = 200) -> None:
        self.responses[url] = make_response(status_code, json.dumps(data).encode("utf-8"))

    def add_text(self, url: str, text: str, content_type: str = "text/html", status_code: int = 200) -> None:
        self.responses[url] = make_response(status_code, text.encode("utf-8"), content_type)

    def add_bytes(self, url: str, data: bytes) -> None:
        self.responses[url] = make_response(200, data, "application/octet-stream")

    def add_status(self, url: str, status_code: int) -> None:
        self.responses[url] = make_response(status_code, b"", "text/plain")

    def add_error(self, url: str, error: Exception) -> None:
        self.responses[url] = error

    @property
    def requested_urls(self) -> List[str]:
        return [c.args[0] for c in self.session.get.call_args_list]

    def call_count(self, url: str) -> int:
        return self.requested_urls.count(url)


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch):
    """Keep configuration environment variables from leaking into tests."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_registry():
    """A routed mock session; register responses with add_json/add_text/add_bytes."""
    return FakeRegistry()


@pytest.fixture
def cache(fake_registry):
    """A DocumentCache over the fake registry session."""
    return DocumentCache(session=fake_registry.session)
