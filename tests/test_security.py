"""Tests for security policy extraction and credential lookup."""

import pytest

from openapi_mcp.models import OperationSecurity, SecurityMode
from openapi_mcp.security import (
    EnvironmentCredentials,
    SecurityPolicy,
    StaticCredentials,
    extract_security_policy,
    to_env_var_name,
)


class TestToEnvVarName:
    @pytest.mark.parametrize(
        "header, expected",
        [("X-API-Key", "X_API_KEY"), ("Authorization", "AUTHORIZATION"), ("x.tenant id", "X_TENANT_ID")],
    )
    def test_conversion(self, header, expected):
        assert to_env_var_name(header) == expected


class TestExtractSecurityPolicy:
    def test_openapi_3(self, petstore):
        policy = extract_security_policy(petstore)
        assert policy.global_security == [{"ApiKeyAuth": []}]
        scheme = policy.security_schemes["ApiKeyAuth"]
        assert scheme.is_header_api_key
        assert scheme.header_name == "X-API-Key"

    def test_swagger_2(self, swagger):
        policy = extract_security_policy(swagger)
        assert policy.global_security == []
        assert set(policy.security_schemes) == {"Token", "Basic"}
        assert policy.security_schemes["Token"].is_header_api_key
        assert not policy.security_schemes["Basic"].is_header_api_key

    def test_no_document(self):
        assert extract_security_policy(None) is None

    def test_default_policy_is_empty(self):
        assert SecurityPolicy() == SecurityPolicy(global_security=[], security_schemes={})


class TestOperationSecurity:
    def test_inherited(self):
        security = OperationSecurity.from_operation({})
        assert security.mode is SecurityMode.INHERITED
        assert security.resolve([{"A": []}]) == [{"A": []}]

    def test_explicit_none(self):
        security = OperationSecurity.from_operation({"security": []})
        assert security.mode is SecurityMode.NONE
        assert security.resolve([{"A": []}]) == []

    def test_override(self):
        security = OperationSecurity.from_operation({"security": [{"B": []}]})
        assert security.mode is SecurityMode.OVERRIDE
        assert security.resolve([{"A": []}]) == [{"B": []}]


class TestCredentials:
    def test_environment(self, monkeypatch):
        monkeypatch.setenv("X_API_KEY", "secret")
        monkeypatch.delenv("X_OTHER", raising=False)
        credentials = EnvironmentCredentials()
        assert credentials.get("X_API_KEY") == "secret"
        assert credentials.get("X_OTHER") is None

    def test_empty_value_is_missing(self, monkeypatch):
        monkeypatch.setenv("X_API_KEY", "")
        assert EnvironmentCredentials().get("X_API_KEY") is None

    def test_static(self):
        credentials = StaticCredentials({"X_API_KEY": "k"})
        assert credentials.get("X_API_KEY") == "k"
        assert credentials.get("OTHER") is None
