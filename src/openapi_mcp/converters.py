"""Per-version converters from OpenAPI documents to tool definitions."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type, Union

from pydantic_core import SchemaError

from .compiler import OPENAPI_3, SWAGGER_2, SchemaCompileError, SchemaCompiler
from .loader import LoadError, resolve_pointer
from .models import (
    HTTP_METHODS,
    Document,
    Operation,
    OperationSecurity,
    ParameterSpec,
    ToolDefinition,
    Version,
)
from .naming import generate_tool_description, generate_tool_name
from .schema import ObjectSchema, ValidationSchema
from .security import SecurityPolicy, extract_security_policy
from .versions import UnsupportedVersionError


logger = logging.getLogger(__name__)

# Parameter locations the dispatcher can route; header and cookie parameters are skipped.
_ROUTABLE = {"path", "query"}


def _merge_parameters(document: Document, path_item: Dict[str, Any], raw_operation: Dict[str, Any]) -> List[Dict[str, Any]]:
    merged: Dict[Tuple[str, str], Dict[str, Any]] = {}
    for raw in [*(path_item.get("parameters") or []), *(raw_operation.get("parameters") or [])]:
        if "$ref" in raw:
            raw = resolve_pointer(document.raw, raw["$ref"])
        merged[(raw.get("name"), raw.get("in"))] = raw
    return list(merged.values())


def _iter_operations(document: Document) -> Iterator[Tuple[str, str, Dict[str, Any], Dict[str, Any]]]:
    for path, path_item in document.paths.items():
        if not isinstance(path_item, dict):
            continue
        for method, raw_operation in path_item.items():
            if method not in HTTP_METHODS or not isinstance(raw_operation, dict):
                continue
            yield path, method, path_item, raw_operation


def _parameter_schema(compiler: SchemaCompiler, operation: Operation) -> ObjectSchema:
    specs = list(operation.parameters)
    if operation.request_body is not None:
        specs.append(operation.request_body)

    fields: Dict[str, ValidationSchema] = {}
    required = set()
    for spec in specs:
        fields[spec.name] = compiler.compile_parameter(spec)
        if spec.required:
            required.add(spec.name)
        else:
            required.discard(spec.name)
    return ObjectSchema(fields=fields, required=frozenset(required))


def _generate_tools(converter: Union["Swagger2Converter", "OpenAPI3Converter"]) -> List[ToolDefinition]:
    document = converter.document
    policy = converter.policy
    tools: List[ToolDefinition] = []

    for path, method, path_item, raw_operation in _iter_operations(document):
        operation_id = raw_operation.get("operationId")
        try:
            parameters, request_body = converter.extract_parameters(path_item, raw_operation)
            operation = Operation(
                path=path,
                method=method,
                operation_id=operation_id,
                summary=raw_operation.get("summary"),
                description=raw_operation.get("description"),
                parameters=tuple(parameters),
                request_body=request_body,
                security=OperationSecurity.from_operation(raw_operation),
            )
            schema = _parameter_schema(converter.compiler, operation)
            # forces every reachable reference to resolve
            schema.to_json_schema(converter.compiler.arena)
            converter.compiler.arena.validator.adapter(schema)
        except (SchemaCompileError, LoadError, SchemaError, re.error) as exc:
            logger.error("Error converting operation %s %s: %s", method.upper(), path, exc)
            operation = Operation(
                path=path,
                method=method,
                operation_id=operation_id,
                summary=raw_operation.get("summary"),
                description=raw_operation.get("description"),
                security=OperationSecurity.from_operation(raw_operation),
            )
            schema = ObjectSchema(open=True)

        tools.append(
            ToolDefinition(
                name=generate_tool_name(path, method, operation),
                description=generate_tool_description(operation),
                parameter_schema=schema,
                method=method,
                path=path,
                security=operation.security.resolve(policy.global_security),
                arena=converter.compiler.arena,
            )
        )

    return tools


class Swagger2Converter:
    """Swagger 2.0: schemas under ``definitions``, parameters carry their own type fields."""

    version = Version.SWAGGER_2

    def __init__(self, document: Document) -> None:
        self.document = document
        self.compiler = SchemaCompiler(SWAGGER_2, document.components)
        self.policy: SecurityPolicy = extract_security_policy(document) or SecurityPolicy()

    def compile(self, raw: Any) -> ValidationSchema:
        return self.compiler.compile(raw)

    def compile_components(self) -> Dict[str, ValidationSchema]:
        return self.compiler.compile_components()

    def extract_parameters(
        self, path_item: Dict[str, Any], raw_operation: Dict[str, Any]
    ) -> Tuple[List[ParameterSpec], Optional[ParameterSpec]]:
        parameters: List[ParameterSpec] = []
        request_body: Optional[ParameterSpec] = None

        for raw in _merge_parameters(self.document, path_item, raw_operation):
            location = raw.get("in")
            if location == "body":
                request_body = ParameterSpec(
                    name=raw["name"],
                    location="body",
                    required=bool(raw.get("required", False)),
                    raw_schema=raw.get("schema") or {},
                    description=raw.get("description") or "",
                )
                continue
            if location not in _ROUTABLE and location != "formData":
                logger.debug("Skipping %s parameter %s", location, raw.get("name"))
                continue
            raw_schema = {key: value for key, value in raw.items() if key not in ("name", "in", "required")}
            parameters.append(
                ParameterSpec(
                    name=raw["name"],
                    location="body" if location == "formData" else location,
                    required=bool(raw.get("required", False)),
                    raw_schema=raw_schema,
                    description=raw.get("description") or "",
                )
            )

        return parameters, request_body

    def generate_tools(self) -> List[ToolDefinition]:
        return _generate_tools(self)


class OpenAPI3Converter:
    """OpenAPI 3.0 and 3.1: schemas under ``components.schemas``, JSON request bodies."""

    version = Version.OPENAPI_3_0

    def __init__(self, document: Document) -> None:
        self.document = document
        self.compiler = SchemaCompiler(OPENAPI_3, document.components)
        self.policy: SecurityPolicy = extract_security_policy(document) or SecurityPolicy()

    def compile(self, raw: Any) -> ValidationSchema:
        return self.compiler.compile(raw)

    def compile_components(self) -> Dict[str, ValidationSchema]:
        return self.compiler.compile_components()

    def extract_parameters(
        self, path_item: Dict[str, Any], raw_operation: Dict[str, Any]
    ) -> Tuple[List[ParameterSpec], Optional[ParameterSpec]]:
        parameters: List[ParameterSpec] = []
        for raw in _merge_parameters(self.document, path_item, raw_operation):
            location = raw.get("in")
            if location not in _ROUTABLE:
                logger.debug("Skipping %s parameter %s", location, raw.get("name"))
                continue
            parameters.append(
                ParameterSpec(
                    name=raw["name"],
                    location=location,
                    required=bool(raw.get("required", False)),
                    raw_schema=raw.get("schema") or self._content_schema(raw) or {},
                    description=raw.get("description") or "",
                )
            )
        return parameters, self._request_body(raw_operation)

    def generate_tools(self) -> List[ToolDefinition]:
        return _generate_tools(self)

    def _request_body(self, raw_operation: Dict[str, Any]) -> Optional[ParameterSpec]:
        body = raw_operation.get("requestBody")
        if not body:
            return None
        if "$ref" in body:
            body = resolve_pointer(self.document.raw, body["$ref"])
        schema = self._content_schema(body)
        if schema is None:
            return None
        return ParameterSpec(
            name="body",
            location="body",
            required=bool(body.get("required", False)),
            raw_schema=schema,
            description=body.get("description") or "Request body",
        )

    def _content_schema(self, raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        content = raw.get("content") or {}
        media = content.get("application/json") or next(iter(content.values()), None)
        if not isinstance(media, dict):
            return None
        return media.get("schema")


_CONVERTERS: Dict[Version, Type[Union[Swagger2Converter, OpenAPI3Converter]]] = {
    Version.SWAGGER_2: Swagger2Converter,
    # 3.1 is served by the 3.0 converter
    Version.OPENAPI_3_0: OpenAPI3Converter,
    Version.OPENAPI_3_1: OpenAPI3Converter,
}


def create_converter(document: Document) -> Union[Swagger2Converter, OpenAPI3Converter]:
    converter_cls = _CONVERTERS.get(document.version)
    if converter_cls is None:
        raise UnsupportedVersionError(f"Unsupported OpenAPI version: {document.version}")
    return converter_cls(document)
