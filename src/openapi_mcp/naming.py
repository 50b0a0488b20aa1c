"""Tool name and description derivation for OpenAPI operations."""

from __future__ import annotations

from typing import Optional

from .models import Operation

# Leading path segments dropped from generated names.
COMMON_PREFIXES = ("api",)

DEFAULT_DESCRIPTION = "No description available"


def generate_tool_name(path: str, method: str, operation: Optional[Operation] = None) -> str:
    """Return the operationId when present, else ``<method>_<path segments>``.

    ``GET /api/person/{id}`` becomes ``get_person_Byid``; the root path
    becomes ``<method>_root``.
    """
    if operation is not None and operation.operation_id:
        return operation.operation_id

    parts = [part for part in path.split("/") if part]
    if parts and parts[0].lower() in COMMON_PREFIXES:
        parts = parts[1:]

    segments = []
    for part in parts:
        if part.startswith("{") and part.endswith("}"):
            segments.append(f"By{part[1:-1]}")
        else:
            segments.append(part)

    return f"{method.lower()}_{'_'.join(segments) or 'root'}"


def generate_tool_description(operation: Optional[Operation]) -> str:
    if operation is None:
        return DEFAULT_DESCRIPTION
    return operation.summary or operation.description or DEFAULT_DESCRIPTION
