"""Internal models for loaded documents and tool definitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .compiler import SchemaArena
    from .schema import ObjectSchema


HTTP_METHODS = ("get", "post", "put", "delete", "patch", "options", "head")


class Version(str, Enum):
    SWAGGER_2 = "2.0"
    OPENAPI_3_0 = "3.0"
    OPENAPI_3_1 = "3.1"

    @property
    def is_legacy(self) -> bool:
        return self is Version.SWAGGER_2


class SecurityMode(str, Enum):
    INHERITED = "inherited"
    NONE = "none"
    OVERRIDE = "override"


@dataclass(frozen=True)
class OperationSecurity:
    """Operation-level security: inherit the global list, opt out, or override it."""

    mode: SecurityMode = SecurityMode.INHERITED
    requirements: Tuple[Dict[str, List[str]], ...] = ()

    @classmethod
    def from_operation(cls, operation: Dict[str, Any]) -> "OperationSecurity":
        if "security" not in operation or operation["security"] is None:
            return cls(SecurityMode.INHERITED)
        requirements = operation["security"]
        if not requirements:
            return cls(SecurityMode.NONE)
        return cls(SecurityMode.OVERRIDE, tuple(requirements))

    def resolve(self, global_security: List[Dict[str, List[str]]]) -> List[Dict[str, List[str]]]:
        if self.mode is SecurityMode.INHERITED:
            return list(global_security or [])
        if self.mode is SecurityMode.NONE:
            return []
        return list(self.requirements)


@dataclass(frozen=True)
class SecurityScheme:
    name: str
    type: str
    location: Optional[str] = None
    header_name: Optional[str] = None

    @classmethod
    def from_raw(cls, name: str, raw: Dict[str, Any]) -> "SecurityScheme":
        return cls(
            name=name,
            type=raw.get("type", ""),
            location=raw.get("in"),
            header_name=raw.get("name"),
        )

    @property
    def is_header_api_key(self) -> bool:
        return self.type == "apiKey" and self.location == "header" and bool(self.header_name)


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    location: str
    required: bool
    raw_schema: Dict[str, Any]
    description: str = ""


@dataclass(frozen=True)
class Operation:
    path: str
    method: str
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    parameters: Tuple[ParameterSpec, ...] = ()
    request_body: Optional[ParameterSpec] = None
    security: OperationSecurity = OperationSecurity()


@dataclass(frozen=True)
class Document:
    version: Version
    raw: Dict[str, Any]
    source: Optional[str] = None

    @property
    def paths(self) -> Dict[str, Any]:
        return self.raw.get("paths") or {}

    @property
    def components(self) -> Dict[str, Any]:
        if self.version.is_legacy:
            return self.raw.get("definitions") or {}
        return (self.raw.get("components") or {}).get("schemas") or {}

    @property
    def servers(self) -> List[Dict[str, Any]]:
        return self.raw.get("servers") or []

    @property
    def host(self) -> Optional[str]:
        return self.raw.get("host")

    @property
    def base_path(self) -> str:
        return self.raw.get("basePath") or ""

    @property
    def schemes(self) -> List[str]:
        return self.raw.get("schemes") or []

    @property
    def security(self) -> List[Dict[str, List[str]]]:
        return self.raw.get("security") or []

    @property
    def raw_security_schemes(self) -> Dict[str, Any]:
        if self.version.is_legacy:
            return self.raw.get("securityDefinitions") or {}
        return (self.raw.get("components") or {}).get("securitySchemes") or {}

    @property
    def security_schemes(self) -> Dict[str, SecurityScheme]:
        return {
            name: SecurityScheme.from_raw(name, raw or {})
            for name, raw in self.raw_security_schemes.items()
        }


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    parameter_schema: "ObjectSchema"
    method: str
    path: str
    security: List[Dict[str, List[str]]] = field(default_factory=list)
    arena: Optional["SchemaArena"] = None
