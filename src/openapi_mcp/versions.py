"""OpenAPI version detection."""

from __future__ import annotations

from typing import Any, Mapping

from .models import Version


class UnsupportedVersionError(Exception):
    pass


def detect_version(raw: Mapping[str, Any]) -> Version:
    swagger = raw.get("swagger")
    openapi = raw.get("openapi")
    if swagger == "2.0":
        return Version.SWAGGER_2
    if isinstance(openapi, str) and openapi.startswith("3.0"):
        return Version.OPENAPI_3_0
    if isinstance(openapi, str) and openapi.startswith("3.1"):
        return Version.OPENAPI_3_1
    raise UnsupportedVersionError("Unsupported or undetected OpenAPI version")
