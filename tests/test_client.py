"""Tests for parameter routing, security headers and HTTP dispatch."""

import httpx
import pytest

from openapi_mcp.client import ApiClient, ApiError, MissingCredentialError, RequestError
from openapi_mcp.models import SecurityScheme
from openapi_mcp.security import StaticCredentials

API_KEY = SecurityScheme(name="ApiKeyAuth", type="apiKey", location="header", header_name="X-API-Key")
BASIC = SecurityScheme(name="Basic", type="basic")


@pytest.fixture
def client():
    return ApiClient(base_url="http://h")


class TestClassifyParameters:
    def test_path_and_query_for_get(self, client):
        classified = client.classify_parameters({"id": 7, "q": "x"}, "/api/person/{id}", "get")
        assert classified.path_params == {"id": 7}
        assert classified.query_params == {"q": "x"}
        assert classified.body_params == {}

    def test_body_for_post(self, client):
        classified = client.classify_parameters({"id": 7, "name": "Ada"}, "/api/person/{id}", "POST")
        assert classified.path_params == {"id": 7}
        assert classified.body_params == {"name": "Ada"}
        assert classified.query_params == {}

    def test_wrapped_body_unwrapped(self, client):
        classified = client.classify_parameters({"body": {"name": "Ada", "age": 3}}, "/api/person", "put")
        assert classified.body_params == {"name": "Ada", "age": 3}

    def test_wrapped_body_with_path_key_inside(self, client):
        classified = client.classify_parameters({"body": {"id": 1, "name": "Ada"}}, "/api/person/{id}", "patch")
        assert classified.path_params == {"id": 1}
        assert classified.body_params == {"name": "Ada"}

    def test_body_with_siblings_not_unwrapped(self, client):
        classified = client.classify_parameters({"id": 1, "body": {"name": "Ada"}}, "/api/person/{id}", "post")
        assert classified.path_params == {"id": 1}
        assert classified.body_params == {"body": {"name": "Ada"}}

    def test_body_dropped_for_get(self, client):
        classified = client.classify_parameters({"body": {"name": "Ada"}}, "/api/person", "get")
        assert classified.query_params == {}
        assert classified.body_params == {}

    def test_delete_is_bodyless(self, client):
        classified = client.classify_parameters({"force": True}, "/api/person", "delete")
        assert classified.query_params == {"force": True}

    def test_other_methods_send_body(self, client):
        classified = client.classify_parameters({"x": 1}, "/things", "options")
        assert classified.body_params == {"x": 1}

    def test_every_key_lands_once(self, client):
        params = {"id": 1, "a": 2, "b": 3}
        classified = client.classify_parameters(params, "/x/{id}", "post")
        merged = {**classified.path_params, **classified.query_params, **classified.body_params}
        assert merged == params


class TestSecurityHeaders:
    def test_no_requirements(self):
        client = ApiClient(security_schemes={"ApiKeyAuth": API_KEY}, credentials=StaticCredentials())
        assert client.build_security_headers([]) == {}
        assert client.build_security_headers(None) == {}

    def test_header_injected(self):
        client = ApiClient(
            security_schemes={"ApiKeyAuth": API_KEY}, credentials=StaticCredentials({"X_API_KEY": "secret"})
        )
        assert client.build_security_headers([{"ApiKeyAuth": []}]) == {"X-API-Key": "secret"}

    def test_missing_credential_strict(self):
        client = ApiClient(security_schemes={"ApiKeyAuth": API_KEY}, credentials=StaticCredentials())
        with pytest.raises(MissingCredentialError) as excinfo:
            client.build_security_headers([{"ApiKeyAuth": []}])
        assert str(excinfo.value) == (
            "Required security token 'X-API-Key' (environment variable: X_API_KEY) is missing"
        )

    def test_missing_credential_lenient(self):
        client = ApiClient(
            security_schemes={"ApiKeyAuth": API_KEY}, strict_security=False, credentials=StaticCredentials()
        )
        assert client.build_security_headers([{"ApiKeyAuth": []}]) == {}

    def test_non_header_schemes_ignored(self):
        client = ApiClient(security_schemes={"Basic": BASIC}, credentials=StaticCredentials())
        assert client.build_security_headers([{"Basic": []}]) == {}

    def test_unreferenced_scheme_ignored(self):
        client = ApiClient(security_schemes={"ApiKeyAuth": API_KEY}, credentials=StaticCredentials())
        assert client.build_security_headers([{"Other": []}]) == {}


class TestBuildUrl:
    def test_percent_encoding(self, client):
        assert client.build_url("/files/{name}", {"name": "a b/c"}) == "http://h/files/a%20b%2Fc"

    def test_no_base_url(self):
        assert ApiClient().build_url("/x/{id}", {"id": 5}) == "/x/5"


class TestRequest:
    async def test_get_with_query(self, make_transport):
        transport = make_transport(payload={"items": []})
        client = ApiClient(base_url="http://h", transport=transport)
        response = await client.request("get", "/api/pets", query_params={"limit": 5})
        assert response.data == {"items": []}
        assert response.status == 200
        assert transport.last.method == "GET"
        assert transport.last.url.params["limit"] == "5"
        assert transport.last.content == b""

    async def test_post_sends_json_body(self, make_transport):
        transport = make_transport(status=201, payload={"id": 1})
        client = ApiClient(base_url="http://h", headers={"X-Custom": "1"}, transport=transport)
        response = await client.request("post", "/api/person", body_params={"name": "Ada"})
        assert response.status == 201
        assert transport.last_json() == {"name": "Ada"}
        assert str(transport.last.url) == "http://h/api/person"
        assert transport.last.headers["Content-Type"] == "application/json"
        assert transport.last.headers["Accept"] == "application/json"
        assert transport.last.headers["X-Custom"] == "1"

    async def test_delete_never_sends_body(self, make_transport):
        transport = make_transport()
        client = ApiClient(base_url="http://h", transport=transport)
        await client.request("delete", "/api/person/{id}", path_params={"id": 3}, body_params={"x": 1})
        assert transport.last.content == b""
        assert str(transport.last.url) == "http://h/api/person/3"

    async def test_security_header_sent(self, make_transport):
        transport = make_transport()
        client = ApiClient(
            base_url="http://h",
            security_schemes={"ApiKeyAuth": API_KEY},
            credentials=StaticCredentials({"X_API_KEY": "secret"}),
            transport=transport,
        )
        await client.request("get", "/api/pets", security=[{"ApiKeyAuth": []}])
        assert transport.last.headers["X-API-Key"] == "secret"

    async def test_missing_credential_sends_nothing(self, make_transport):
        transport = make_transport()
        client = ApiClient(
            base_url="http://h",
            security_schemes={"ApiKeyAuth": API_KEY},
            credentials=StaticCredentials(),
            transport=transport,
        )
        with pytest.raises(MissingCredentialError):
            await client.request("get", "/api/pets", security=[{"ApiKeyAuth": []}])
        assert transport.requests == []

    async def test_api_error(self, make_transport):
        transport = make_transport(status=404, payload={"message": "not found"})
        client = ApiClient(base_url="http://h", transport=transport)
        with pytest.raises(ApiError) as excinfo:
            await client.request("get", "/api/person/{id}", path_params={"id": 9})
        assert str(excinfo.value) == "API Error: 404 Not Found"
        assert excinfo.value.status == 404
        assert excinfo.value.data == {"message": "not found"}

    async def test_text_response(self, make_transport):
        transport = make_transport(text="plain")
        response = await ApiClient(base_url="http://h", transport=transport).request("get", "/x")
        assert response.data == "plain"

    async def test_empty_response(self, make_transport):
        transport = make_transport(status=204, content=b"")
        response = await ApiClient(base_url="http://h", transport=transport).request("delete", "/x")
        assert response.data is None
        assert response.status_text == "No Content"

    async def test_request_error(self):
        def _fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = ApiClient(base_url="http://h", transport=httpx.MockTransport(_fail))
        with pytest.raises(RequestError, match="Request Error: connection refused"):
            await client.request("get", "/x")
