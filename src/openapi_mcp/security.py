"""Security policy extraction and credential lookup."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol

from .models import Document, SecurityScheme


_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


@dataclass(frozen=True)
class SecurityPolicy:
    global_security: List[Dict[str, List[str]]] = field(default_factory=list)
    security_schemes: Dict[str, SecurityScheme] = field(default_factory=dict)


def extract_security_policy(document: Optional[Document]) -> Optional[SecurityPolicy]:
    if document is None:
        return None
    return SecurityPolicy(
        global_security=document.security,
        security_schemes=document.security_schemes,
    )


def to_env_var_name(header_name: str) -> str:
    """'X-API-Key' -> 'X_API_KEY'."""
    return _NON_ALNUM.sub("_", header_name).upper()


class CredentialProvider(Protocol):
    def get(self, name: str) -> Optional[str]:
        ...


class EnvironmentCredentials:
    """Reads credentials from the process environment."""

    def get(self, name: str) -> Optional[str]:
        return os.environ.get(name) or None


class StaticCredentials:
    def __init__(self, values: Optional[Mapping[str, str]] = None) -> None:
        self._values = dict(values or {})

    def get(self, name: str) -> Optional[str]:
        return self._values.get(name) or None
