"""Validation schema nodes produced by the schema compiler.

Nodes are immutable descriptions of an argument shape. They render
themselves as JSON Schema for the host registry and are checked at runtime
through pydantic: ``ArgumentValidator`` turns each node into an annotation
(``create_model`` for objects, constrained ``Field`` types for scalars) and
caches one ``TypeAdapter`` per node. ``ReferenceSchema`` is resolved by name
through a ``SchemaArena`` only when a value reaches it.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    Callable,
    Dict,
    FrozenSet,
    List,
    Literal,
    Optional,
    Set,
    Tuple,
)

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StrictBool,
    TypeAdapter,
    ValidationError,
    create_model,
    model_validator,
)
from pydantic_core import PydanticCustomError

if TYPE_CHECKING:
    from .compiler import SchemaArena


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class SchemaValidationError(ValueError):
    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{path or '<root>'}: {message}")


def _join(path: str, key: Any) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}" if path else str(key)


def _concat(outer: str, inner: str) -> str:
    if not inner:
        return outer
    if not outer:
        return inner
    return f"{outer}{inner}" if inner.startswith("[") else f"{outer}.{inner}"


def describe_error(exc: ValidationError) -> Tuple[str, str]:
    """Return ``(dotted path, message)`` for the first error of ``exc``."""
    error = exc.errors(include_url=False)[0]
    path = ""
    for part in error["loc"]:
        path = _join(path, part)
    message = error["msg"]
    if error["type"] == "nested":
        ctx = error.get("ctx") or {}
        path = _concat(path, ctx.get("path", ""))
        message = ctx.get("message", message)
    return path, message


@dataclass(frozen=True, kw_only=True)
class ValidationSchema:
    nullable: bool = False
    default: Any = MISSING
    optional: bool = False
    description: Optional[str] = None

    @property
    def has_default(self) -> bool:
        return self.default is not MISSING

    def with_modifiers(self, **changes: Any) -> "ValidationSchema":
        return replace(self, **changes)

    def validate(self, value: Any, arena: Optional["SchemaArena"] = None, path: str = "") -> Any:
        validator = arena.validator if arena is not None else ArgumentValidator()
        try:
            return validator.validate_python(self, value)
        except ValidationError as exc:
            error_path, message = describe_error(exc)
            raise SchemaValidationError(_concat(path, error_path), message) from exc

    def to_json_schema(self, arena: Optional["SchemaArena"] = None) -> Dict[str, Any]:
        return JsonSchemaRenderer(arena).document(self)

    def _annotation(self, validator: "ArgumentValidator") -> Any:
        return Any

    def _json_body(self, renderer: "JsonSchemaRenderer") -> Dict[str, Any]:
        return {}


@dataclass(frozen=True, kw_only=True)
class AnySchema(ValidationSchema):
    pass


@dataclass(frozen=True, kw_only=True)
class StringSchema(ValidationSchema):
    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    enum: Optional[Tuple[Any, ...]] = None
    format: Optional[str] = None

    def _annotation(self, validator: "ArgumentValidator") -> Any:
        if self.enum is not None:
            annotation: Any = Literal[self.enum]
        else:
            annotation = Annotated[
                str,
                Field(strict=True, pattern=self.pattern, min_length=self.min_length, max_length=self.max_length),
            ]
        if self.format in _FORMATS:
            annotation = Annotated[annotation, AfterValidator(_format_check(self.format))]
        return annotation

    def _json_body(self, renderer: "JsonSchemaRenderer") -> Dict[str, Any]:
        body: Dict[str, Any] = {"type": "string"}
        if self.enum is not None:
            body["enum"] = list(self.enum)
        if self.pattern is not None:
            body["pattern"] = self.pattern
        if self.min_length is not None:
            body["minLength"] = self.min_length
        if self.max_length is not None:
            body["maxLength"] = self.max_length
        if self.format:
            body["format"] = self.format
        return body


_FORMATS: Dict[str, TypeAdapter] = {
    "date-time": TypeAdapter(datetime),
    "date": TypeAdapter(date),
    "email": TypeAdapter(EmailStr),
    "uri": TypeAdapter(AnyUrl),
}


def _format_check(fmt: str) -> Callable[[str], str]:
    adapter = _FORMATS[fmt]

    def check(value: str) -> str:
        # the string itself is forwarded, not the parsed object
        try:
            adapter.validate_python(value)
        except ValidationError:
            raise PydanticCustomError("format", "Input is not a valid {format}", {"format": fmt})
        return value

    return check


@dataclass(frozen=True, kw_only=True)
class NumberSchema(ValidationSchema):
    integer: bool = False
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def _annotation(self, validator: "ArgumentValidator") -> Any:
        return Annotated[int if self.integer else float, Field(strict=True, ge=self.minimum, le=self.maximum)]

    def _json_body(self, renderer: "JsonSchemaRenderer") -> Dict[str, Any]:
        body: Dict[str, Any] = {"type": "integer" if self.integer else "number"}
        if self.minimum is not None:
            body["minimum"] = self.minimum
        if self.maximum is not None:
            body["maximum"] = self.maximum
        return body


@dataclass(frozen=True, kw_only=True)
class BooleanSchema(ValidationSchema):
    def _annotation(self, validator: "ArgumentValidator") -> Any:
        return StrictBool

    def _json_body(self, renderer: "JsonSchemaRenderer") -> Dict[str, Any]:
        return {"type": "boolean"}


@dataclass(frozen=True, kw_only=True)
class ArraySchema(ValidationSchema):
    items: ValidationSchema = field(default_factory=AnySchema)
    min_items: Optional[int] = None
    max_items: Optional[int] = None

    def _annotation(self, validator: "ArgumentValidator") -> Any:
        return Annotated[
            List[validator.annotation(self.items)],  # type: ignore[misc]
            Field(min_length=self.min_items, max_length=self.max_items),
        ]

    def _json_body(self, renderer: "JsonSchemaRenderer") -> Dict[str, Any]:
        body: Dict[str, Any] = {"type": "array", "items": renderer.render(self.items)}
        if self.min_items is not None:
            body["minItems"] = self.min_items
        if self.max_items is not None:
            body["maxItems"] = self.max_items
        return body


@dataclass(frozen=True, kw_only=True)
class ObjectSchema(ValidationSchema):
    """Object with ordered named fields; ``open`` objects accept any keys."""

    fields: Dict[str, ValidationSchema] = field(default_factory=dict)
    required: FrozenSet[str] = frozenset()
    open: bool = False

    def is_required(self, name: str) -> bool:
        return name in self.required and not self.fields[name].optional

    def _annotation(self, validator: "ArgumentValidator") -> Any:
        if self.open:
            return Dict[str, Any]
        return validator.object_model(self)

    def _json_body(self, renderer: "JsonSchemaRenderer") -> Dict[str, Any]:
        if self.open:
            return {"type": "object", "additionalProperties": True}
        body: Dict[str, Any] = {
            "type": "object",
            "properties": {name: renderer.render(schema) for name, schema in self.fields.items()},
        }
        required = [name for name in self.fields if self.is_required(name)]
        if required:
            body["required"] = required
        return body


@dataclass(frozen=True, kw_only=True)
class UnionSchema(ValidationSchema):
    members: Tuple[ValidationSchema, ...] = ()

    def _annotation(self, validator: "ArgumentValidator") -> Any:
        if not self.members:
            return Any
        return Annotated[Any, AfterValidator(lambda value: validator.validate_any(self.members, value))]

    def _json_body(self, renderer: "JsonSchemaRenderer") -> Dict[str, Any]:
        return {"anyOf": [renderer.render(member) for member in self.members]}


@dataclass(frozen=True, kw_only=True)
class IntersectionSchema(ValidationSchema):
    members: Tuple[ValidationSchema, ...] = ()

    def _annotation(self, validator: "ArgumentValidator") -> Any:
        return Annotated[Any, AfterValidator(lambda value: validator.validate_all(self.members, value))]

    def _json_body(self, renderer: "JsonSchemaRenderer") -> Dict[str, Any]:
        return {"allOf": [renderer.render(member) for member in self.members]}


@dataclass(frozen=True, kw_only=True)
class ReferenceSchema(ValidationSchema):
    name: str

    def _annotation(self, validator: "ArgumentValidator") -> Any:
        if validator.arena is None:
            return Any
        return Annotated[Any, AfterValidator(lambda value: validator.validate_reference(self.name, value))]

    def _json_body(self, renderer: "JsonSchemaRenderer") -> Dict[str, Any]:
        return renderer.reference(self.name)


class _ArgumentModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


def _argument_preparer(defaults: Dict[str, Any], null_as_missing: FrozenSet[str]) -> Any:
    @model_validator(mode="before")
    @classmethod
    def prepare(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = {key: value for key, value in data.items() if not (value is None and key in null_as_missing)}
        for name, default in defaults.items():
            if name not in data:
                data[name] = copy.deepcopy(default)
        return data

    return prepare


class ArgumentValidator:
    """Builds pydantic validators for schema nodes and runs them.

    Objects become ``create_model`` classes whose fields are aliased by
    property name; references, unions and intersections are function
    validators that recurse through this instance, so cyclic components are
    only expanded as deep as the value being checked. Revisiting the same
    component with the same value is reported as a cycle.
    """

    def __init__(self, arena: Optional["SchemaArena"] = None) -> None:
        self.arena = arena
        self._adapters: Dict[int, Tuple[ValidationSchema, TypeAdapter]] = {}
        self._active: Set[Tuple[str, int]] = set()

    def annotation(self, schema: ValidationSchema) -> Any:
        annotation = schema._annotation(self)
        if schema.nullable:
            annotation = Optional[annotation]
        return annotation

    def adapter(self, schema: ValidationSchema) -> TypeAdapter:
        cached = self._adapters.get(id(schema))
        if cached is None:
            cached = (schema, TypeAdapter(self.annotation(schema)))
            self._adapters[id(schema)] = cached
        return cached[1]

    def validate_python(self, schema: ValidationSchema, value: Any) -> Any:
        adapter = self.adapter(schema)
        return adapter.dump_python(adapter.validate_python(value), by_alias=True, exclude_unset=True)

    def object_model(self, schema: ObjectSchema) -> type[BaseModel]:
        fields: Dict[str, Tuple[Any, Any]] = {}
        defaults: Dict[str, Any] = {}
        null_as_missing: Set[str] = set()
        for index, (name, field_schema) in enumerate(schema.fields.items()):
            if field_schema.has_default:
                defaults[name] = field_schema.default
            if field_schema.optional and not field_schema.nullable:
                null_as_missing.add(name)
            required = schema.is_required(name) and not field_schema.has_default
            fields[f"field_{index}"] = (
                self.annotation(field_schema),
                Field(... if required else None, alias=name, description=field_schema.description),
            )
        return create_model(
            "Arguments",
            __base__=_ArgumentModel,
            __validators__={"prepare": _argument_preparer(defaults, frozenset(null_as_missing))},
            **fields,
        )

    def validate_reference(self, name: str, value: Any) -> Any:
        target = self.arena.deref(ReferenceSchema(name=name))
        if isinstance(target, ReferenceSchema):
            # unresolvable alias cycle, nothing left to check against
            return value
        key = (name, id(value))
        if key in self._active:
            raise PydanticCustomError("reference_cycle", "Cyclic schema reference '{name}'", {"name": name})
        self._active.add(key)
        try:
            return self._validate_nested(target, value)
        finally:
            self._active.discard(key)

    def validate_any(self, members: Tuple[ValidationSchema, ...], value: Any) -> Any:
        errors: List[str] = []
        for member in members:
            try:
                return self.validate_python(member, value)
            except ValidationError as exc:
                path, message = describe_error(exc)
                errors.append(f"{path}: {message}" if path else message)
        raise PydanticCustomError(
            "union", "does not match any allowed schema ({details})", {"details": "; ".join(errors)}
        )

    def validate_all(self, members: Tuple[ValidationSchema, ...], value: Any) -> Any:
        results = [self._validate_nested(member, value) for member in members]
        if results and all(isinstance(result, dict) for result in results):
            merged: Dict[str, Any] = {}
            for result in results:
                merged.update(result)
            return merged
        return results[-1] if results else value

    def _validate_nested(self, schema: ValidationSchema, value: Any) -> Any:
        try:
            return self.validate_python(schema, value)
        except ValidationError as exc:
            path, message = describe_error(exc)
            raise PydanticCustomError("nested", "{message}", {"path": path, "message": message}) from exc


class JsonSchemaRenderer:
    """Renders schema nodes to JSON Schema, collecting references under ``$defs``."""

    def __init__(self, arena: Optional["SchemaArena"] = None) -> None:
        self.arena = arena
        self.defs: Dict[str, Dict[str, Any]] = {}

    def document(self, schema: ValidationSchema) -> Dict[str, Any]:
        rendered = self.render(schema)
        if self.defs:
            rendered["$defs"] = self.defs
        return rendered

    def render(self, schema: ValidationSchema) -> Dict[str, Any]:
        body = schema._json_body(self)
        if schema.nullable:
            if isinstance(body.get("type"), str):
                body["type"] = [body["type"], "null"]
            else:
                body = {"anyOf": [body, {"type": "null"}]}
        if schema.has_default:
            body["default"] = schema.default
        if schema.description:
            body["description"] = schema.description
        return body

    def reference(self, name: str) -> Dict[str, Any]:
        if self.arena is None:
            return {}
        if name not in self.defs:
            self.defs[name] = {}
            self.defs[name] = self.render(self.arena.resolve(name))
        return {"$ref": f"#/$defs/{name}"}
