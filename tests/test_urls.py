"""Tests for base URL extraction."""

from openapi_mcp.models import Document, Version
from openapi_mcp.urls import extract_base_url


def _doc(raw, version=Version.OPENAPI_3_0):
    return Document(version=version, raw=raw)


class TestExtractBaseUrl:
    def test_override_wins(self):
        doc = _doc({"servers": [{"url": "https://api.example.com"}]})
        assert extract_base_url(doc, "http://localhost:8080") == "http://localhost:8080"

    def test_first_server(self):
        doc = _doc({"servers": [{"url": "https://one.example.com"}, {"url": "https://two.example.com"}]})
        assert extract_base_url(doc) == "https://one.example.com"

    def test_servers_beat_host(self):
        doc = _doc({"servers": [{"url": "https://servers.example.com"}], "host": "host.example.com"})
        assert extract_base_url(doc) == "https://servers.example.com"

    def test_legacy_host_base_path_scheme(self):
        doc = _doc({"host": "api.example.com", "basePath": "/v2", "schemes": ["http", "https"]}, Version.SWAGGER_2)
        assert extract_base_url(doc) == "http://api.example.com/v2"

    def test_legacy_defaults(self):
        doc = _doc({"host": "api.example.com"}, Version.SWAGGER_2)
        assert extract_base_url(doc) == "https://api.example.com"

    def test_nothing_found(self):
        assert extract_base_url(_doc({})) is None

    def test_no_document(self):
        assert extract_base_url(None) is None
        assert extract_base_url(None, "http://h") == "http://h"
