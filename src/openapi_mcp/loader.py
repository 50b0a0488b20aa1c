"""OpenAPI document loading: fetch, parse, validate structure."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .models import Document
from .versions import UnsupportedVersionError, detect_version


logger = logging.getLogger(__name__)

JSON_EXTENSIONS = {".json"}
YAML_EXTENSIONS = {".yaml", ".yml"}


class LoadError(Exception):
    pass


class _Parameter(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: Optional[str] = None
    location: Optional[str] = Field(default=None, alias="in")
    ref: Optional[str] = Field(default=None, alias="$ref")

    @model_validator(mode="after")
    def _named_or_referenced(self) -> "_Parameter":
        if self.ref is None and (not self.name or not self.location):
            raise ValueError("parameter requires 'name' and 'in' (or '$ref')")
        return self


class _Operation(BaseModel):
    model_config = ConfigDict(extra="allow")

    operationId: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    parameters: List[_Parameter] = Field(default_factory=list)
    requestBody: Optional[Dict[str, Any]] = None
    security: Optional[List[Dict[str, List[Any]]]] = None


class _PathItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    parameters: List[_Parameter] = Field(default_factory=list)
    get: Optional[_Operation] = None
    put: Optional[_Operation] = None
    post: Optional[_Operation] = None
    delete: Optional[_Operation] = None
    options: Optional[_Operation] = None
    head: Optional[_Operation] = None
    patch: Optional[_Operation] = None


class _Info(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str
    version: Union[str, int, float]


class _DocumentSkeleton(BaseModel):
    model_config = ConfigDict(extra="allow")

    swagger: Optional[str] = None
    openapi: Optional[str] = None
    info: _Info
    paths: Dict[str, Optional[_PathItem]] = Field(default_factory=dict)
    security: Optional[List[Dict[str, List[Any]]]] = None

    @model_validator(mode="after")
    def _paths_present(self) -> "_DocumentSkeleton":
        # 3.1 allows documents with webhooks/components only
        if "paths" not in self.model_fields_set and not (self.openapi or "").startswith("3.1"):
            raise ValueError("document requires 'paths'")
        return self


def parse_content(text: str, fmt: str) -> Dict[str, Any]:
    try:
        data = json.loads(text) if fmt == "json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise LoadError(f"Invalid {fmt.upper()} content: {exc}") from exc
    if not isinstance(data, dict):
        raise LoadError(f"Expected a mapping at the document root, got {type(data).__name__}")
    return data


def validate_document(raw: Dict[str, Any], source: Optional[str] = None) -> Document:
    try:
        _DocumentSkeleton.model_validate(raw)
    except ValidationError as exc:
        raise LoadError(f"Invalid OpenAPI document: {exc}") from exc
    return Document(version=detect_version(raw), raw=raw, source=source)


def resolve_pointer(raw: Dict[str, Any], ref: str) -> Any:
    """Resolve a local JSON pointer such as ``#/components/parameters/Limit``."""
    if not ref.startswith("#/"):
        raise LoadError(f"Only local references are supported: {ref}")
    node: Any = raw
    for part in ref[2:].split("/"):
        part = part.replace("~1", "/").replace("~0", "~")
        if not isinstance(node, dict) or part not in node:
            raise LoadError(f"Unresolvable reference: {ref}")
        node = node[part]
    return node


class DocumentLoader:
    def __init__(
        self,
        timeout_seconds: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    def load_from_object(self, raw: Dict[str, Any], source: Optional[str] = None) -> Document:
        return validate_document(raw, source)

    def load_from_file(self, path: Union[str, Path]) -> Document:
        file_path = Path(path).resolve()
        ext = file_path.suffix.lower()
        try:
            if ext in JSON_EXTENSIONS:
                fmt = "json"
            elif ext in YAML_EXTENSIONS:
                fmt = "yaml"
            else:
                raise LoadError(
                    f"Unsupported file extension: {ext}. Only .json, .yaml, and .yml are supported."
                )
            text = file_path.read_text(encoding="utf-8")
            document = validate_document(parse_content(text, fmt), str(file_path))
        except (OSError, UnicodeDecodeError) as exc:
            raise LoadError(f"Failed to load OpenAPI document: {exc}") from exc
        except LoadError as exc:
            raise LoadError(f"Failed to load OpenAPI document: {exc}") from exc

        logger.info("Loaded OpenAPI %s document from %s", document.version.value, file_path)
        return document

    async def load_from_url(self, url: str) -> Document:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                response = await client.get(url)
            if response.status_code < 200 or response.status_code >= 300:
                raise LoadError(f"HTTP status code {response.status_code}")
            text = response.text
            fmt = "json" if url.lower().endswith(".json") or text.strip().startswith("{") else "yaml"
            document = validate_document(parse_content(text, fmt), url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise LoadError(f"Failed to load OpenAPI document from URL: {exc}") from exc
        except LoadError as exc:
            raise LoadError(f"Failed to load OpenAPI document from URL: {exc}") from exc

        logger.info("Loaded OpenAPI %s document from %s", document.version.value, url)
        return document

    def load_from_directory(self, dir_path: Union[str, Path]) -> List[Document]:
        directory = Path(dir_path).resolve()
        if not directory.is_dir():
            raise LoadError(f"Directory does not exist or is not a directory: {directory}")

        files = sorted(
            entry for entry in directory.iterdir()
            if entry.is_file() and entry.suffix.lower() in YAML_EXTENSIONS
        )
        if not files:
            raise LoadError(f"No YAML files found in directory: {directory}")

        documents: List[Document] = []
        for file_path in files:
            try:
                documents.append(self.load_from_file(file_path))
            except (LoadError, UnsupportedVersionError) as exc:
                logger.warning("Failed to load schema from %s: %s", file_path, exc)

        if not documents:
            raise LoadError(f"No valid OpenAPI documents found in directory: {directory}")
        return documents
