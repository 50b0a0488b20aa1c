"""Compile raw OpenAPI / Swagger type definitions into validation schemas."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from .models import ParameterSpec
from .schema import (
    AnySchema,
    ArgumentValidator,
    ArraySchema,
    BooleanSchema,
    IntersectionSchema,
    NumberSchema,
    ObjectSchema,
    ReferenceSchema,
    StringSchema,
    UnionSchema,
    ValidationSchema,
)


logger = logging.getLogger(__name__)


class SchemaCompileError(Exception):
    pass


@dataclass(frozen=True)
class SchemaDialect:
    name: str
    ref_prefix: str
    nullable_key: str
    supports_union: bool


SWAGGER_2 = SchemaDialect(
    name="swagger-2.0",
    ref_prefix="#/definitions/",
    nullable_key="x-nullable",
    supports_union=False,
)
OPENAPI_3 = SchemaDialect(
    name="openapi-3",
    ref_prefix="#/components/schemas/",
    nullable_key="nullable",
    supports_union=True,
)


class SchemaArena:
    """Per-document store of compiled components, keyed by reference name.

    Components are compiled on first access and memoized. ``deref`` follows
    reference-to-reference chains and stops at the first name it revisits.
    ``validator`` holds the pydantic adapters built for this document.
    """

    def __init__(
        self,
        components: Mapping[str, Any],
        compile_fn: Callable[[Any], ValidationSchema],
    ) -> None:
        self.components = components
        self._compile = compile_fn
        self._compiled: Dict[str, ValidationSchema] = {}
        self.validator = ArgumentValidator(self)

    def __contains__(self, name: str) -> bool:
        return name in self.components

    def resolve(self, name: str) -> ValidationSchema:
        cached = self._compiled.get(name)
        if cached is not None:
            return cached
        if name not in self.components:
            raise SchemaCompileError(f"Unknown schema reference '{name}'")
        schema = self._compile(self.components[name])
        self._compiled[name] = schema
        return schema

    def deref(self, schema: ValidationSchema) -> ValidationSchema:
        in_progress: Set[str] = set()
        while isinstance(schema, ReferenceSchema):
            if schema.name in in_progress:
                return schema
            in_progress.add(schema.name)
            schema = self.resolve(schema.name)
        return schema


class SchemaCompiler:
    def __init__(self, dialect: SchemaDialect, components: Optional[Mapping[str, Any]] = None) -> None:
        self.dialect = dialect
        self.components = components or {}
        self.arena = SchemaArena(self.components, self.compile)

    def compile(self, raw: Any) -> ValidationSchema:
        if raw is None or raw == {}:
            return AnySchema()
        if not isinstance(raw, Mapping):
            raise SchemaCompileError(f"Schema must be a mapping, got {type(raw).__name__}")

        nullable = bool(raw.get(self.dialect.nullable_key, False))
        if "$ref" in raw:
            schema: ValidationSchema = ReferenceSchema(name=self._reference_name(raw["$ref"]))
        elif raw.get("allOf"):
            schema = IntersectionSchema(members=tuple(self.compile(member) for member in raw["allOf"]))
        elif self.dialect.supports_union and (raw.get("oneOf") or raw.get("anyOf")):
            members = raw.get("oneOf") or raw.get("anyOf")
            schema = UnionSchema(members=tuple(self.compile(member) for member in members))
        else:
            schema, type_nullable = self._compile_typed(raw)
            nullable = nullable or type_nullable

        return self._apply_modifiers(schema, raw, nullable)

    def compile_parameter(self, parameter: ParameterSpec) -> ValidationSchema:
        schema = self.compile(parameter.raw_schema)
        changes: Dict[str, Any] = {}
        if parameter.description and not schema.description:
            changes["description"] = parameter.description
        if not parameter.required:
            changes["optional"] = True
        return schema.with_modifiers(**changes) if changes else schema

    def compile_components(self) -> Dict[str, ValidationSchema]:
        compiled: Dict[str, ValidationSchema] = {}
        for name in self.components:
            try:
                compiled[name] = self.arena.resolve(name)
            except SchemaCompileError as exc:
                logger.error("Error converting schema %s: %s", name, exc)
        return compiled

    def _compile_typed(self, raw: Mapping[str, Any]) -> tuple[ValidationSchema, bool]:
        schema_type = raw.get("type")
        nullable = False
        if isinstance(schema_type, list):
            concrete = [item for item in schema_type if item != "null"]
            nullable = len(concrete) != len(schema_type)
            if len(concrete) > 1:
                members = tuple(self.compile({**raw, "type": item}) for item in concrete)
                return UnionSchema(members=members), nullable
            schema_type = concrete[0] if concrete else None

        if schema_type == "string":
            return self._compile_string(raw), nullable
        if schema_type in ("number", "integer"):
            return (
                NumberSchema(
                    integer=schema_type == "integer",
                    minimum=raw.get("minimum"),
                    maximum=raw.get("maximum"),
                ),
                nullable,
            )
        if schema_type == "boolean":
            return BooleanSchema(), nullable
        if schema_type == "array":
            items = raw.get("items")
            return (
                ArraySchema(
                    items=self.compile(items) if items else AnySchema(),
                    min_items=raw.get("minItems"),
                    max_items=raw.get("maxItems"),
                ),
                nullable,
            )
        if schema_type == "object" or (schema_type is None and "properties" in raw):
            return self._compile_object(raw), nullable
        return AnySchema(), nullable

    def _compile_string(self, raw: Mapping[str, Any]) -> StringSchema:
        enum = raw.get("enum")
        return StringSchema(
            pattern=raw.get("pattern"),
            min_length=raw.get("minLength"),
            max_length=raw.get("maxLength"),
            enum=tuple(enum) if enum else None,
            format=raw.get("format") if raw.get("format") in ("date-time", "date", "email", "uri") else None,
        )

    def _compile_object(self, raw: Mapping[str, Any]) -> ObjectSchema:
        properties = raw.get("properties")
        if not properties:
            return ObjectSchema(open=True)
        if not isinstance(properties, Mapping):
            raise SchemaCompileError("Object 'properties' must be a mapping")

        fields = {name: self.compile(prop) for name, prop in properties.items()}
        required: List[str] = raw.get("required") if isinstance(raw.get("required"), list) else []
        return ObjectSchema(fields=fields, required=frozenset(name for name in required if name in fields))

    def _apply_modifiers(self, schema: ValidationSchema, raw: Mapping[str, Any], nullable: bool) -> ValidationSchema:
        changes: Dict[str, Any] = {}
        if nullable:
            changes["nullable"] = True
        if "default" in raw:
            changes["default"] = raw["default"]
        if raw.get("description") and isinstance(raw["description"], str):
            changes["description"] = raw["description"]
        return schema.with_modifiers(**changes) if changes else schema

    def _reference_name(self, ref: Any) -> str:
        if not isinstance(ref, str) or not ref.startswith("#/"):
            raise SchemaCompileError(f"Unsupported schema reference {ref!r}")
        if ref.startswith(self.dialect.ref_prefix):
            name = ref[len(self.dialect.ref_prefix):]
        else:
            name = ref.rsplit("/", 1)[-1]
        return name.replace("~1", "/").replace("~0", "~")
