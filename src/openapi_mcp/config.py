"""Configuration for the OpenAPI MCP server."""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    service_name: str = Field(default="openapi-mcp-server")

    openapi_file: Optional[str] = Field(default=None)
    openapi_url: Optional[str] = Field(default=None)
    openapi_dir: Optional[str] = Field(default=None)

    api_base_url: Optional[str] = Field(default=None)
    api_timeout_seconds: float = Field(default=30)
    api_headers: Dict[str, str] = Field(default_factory=dict)
    strict_security: bool = Field(default=True)

    adapter_transport: str = Field(default="stdio")
    adapter_host: str = Field(default="127.0.0.1")
    adapter_port: int = Field(default=3000)

    adapter_log_level: str = Field(default="INFO")

    def document_source(self) -> tuple[str, str]:
        """Return ``(kind, location)`` for the configured document source."""
        if self.openapi_file:
            return "file", self.openapi_file
        if self.openapi_url:
            return "url", self.openapi_url
        if self.openapi_dir:
            return "dir", self.openapi_dir
        raise ValueError("One of OPENAPI_FILE, OPENAPI_URL or OPENAPI_DIR must be set")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
