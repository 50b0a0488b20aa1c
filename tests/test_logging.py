"""Tests for logging helpers."""

import logging

import pytest

from openapi_mcp.logging import REDACTED, configure_logging, is_sensitive, redact_payload


class TestRedactPayload:
    def test_sensitive_keys_masked(self):
        payload = {"X-API-Key": "k", "Authorization": "Bearer t", "name": "Rex"}
        assert redact_payload(payload) == {
            "X-API-Key": "***REDACTED***",
            "Authorization": "***REDACTED***",
            "name": "Rex",
        }

    def test_nested(self):
        assert redact_payload({"body": {"password": "p", "user": "u"}}) == {
            "body": {"password": "***REDACTED***", "user": "u"}
        }

    def test_lists_of_mappings(self):
        payload = {"accounts": [{"user": "a", "secret": "s"}, "plain"]}
        assert redact_payload(payload) == {"accounts": [{"user": "a", "secret": REDACTED}, "plain"]}

    def test_extra_keys_case_insensitive(self):
        payload = {"X-Pet-Store": "k", "Accept": "application/json"}
        assert redact_payload(payload, ["x-pet-store"]) == {
            "X-Pet-Store": REDACTED,
            "Accept": "application/json",
        }

    def test_input_untouched(self):
        payload = {"token": "t", "items": [{"password": "p"}]}
        redact_payload(payload)
        assert payload == {"token": "t", "items": [{"password": "p"}]}


class TestIsSensitive:
    @pytest.mark.parametrize("name", ["access_token", "Cookie", "X-Api-Key", "apikey", "db_passwd"])
    def test_matches(self, name):
        assert is_sensitive(name)

    def test_plain_names(self):
        assert not is_sensitive("petId")
        assert not is_sensitive(42)


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)
        for name in ("httpx", "httpcore", "mcp.server.lowlevel.server"):
            logging.getLogger(name).setLevel(logging.NOTSET)

    def test_quiets_transport_loggers_above_debug(self):
        configure_logging("info")
        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_debug_keeps_transport_loggers(self):
        configure_logging("DEBUG")
        assert logging.getLogger("httpcore").level == logging.NOTSET

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("loud")
