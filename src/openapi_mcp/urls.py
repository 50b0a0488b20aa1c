"""Base URL extraction from OpenAPI documents."""

from __future__ import annotations

from typing import Optional

from .models import Document


def extract_base_url(document: Optional[Document], override: Optional[str] = None) -> Optional[str]:
    if override:
        return override
    if document is None:
        return None

    servers = document.servers
    if servers and isinstance(servers[0], dict) and servers[0].get("url"):
        return servers[0]["url"]

    if document.host:
        scheme = document.schemes[0] if document.schemes else "https"
        return f"{scheme}://{document.host}{document.base_path}"

    return None
