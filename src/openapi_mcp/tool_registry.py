"""Tool registry: load documents, convert them, bind each tool to an API client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from .client import ApiClient
from .config import Settings
from .converters import create_converter
from .loader import DocumentLoader
from .models import Document, ToolDefinition
from .security import CredentialProvider
from .tools import ToolHandler
from .urls import extract_base_url


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredTool:
    definition: ToolDefinition
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.definition.name


class ToolRegistry:
    def __init__(
        self,
        settings: Settings,
        loader: Optional[DocumentLoader] = None,
        credentials: Optional[CredentialProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.loader = loader or DocumentLoader(timeout_seconds=settings.api_timeout_seconds)
        self.credentials = credentials
        self.transport = transport

    async def load_documents(self) -> List[Document]:
        kind, location = self.settings.document_source()
        if kind == "file":
            return [self.loader.load_from_file(location)]
        if kind == "url":
            return [await self.loader.load_from_url(location)]
        return self.loader.load_from_directory(location)

    def build_tools(self, document: Document) -> List[RegisteredTool]:
        converter = create_converter(document)
        definitions = converter.generate_tools()

        base_url = extract_base_url(document, self.settings.api_base_url)
        if not base_url:
            logger.warning(
                "No base URL provided and none found in %s. API calls will likely fail.",
                document.source or "document",
            )

        client = ApiClient(
            base_url=base_url,
            headers=self.settings.api_headers,
            timeout_seconds=self.settings.api_timeout_seconds,
            security_schemes=converter.policy.security_schemes,
            strict_security=self.settings.strict_security,
            credentials=self.credentials,
            transport=self.transport,
        )
        return [RegisteredTool(definition, ToolHandler(definition, client)) for definition in definitions]

    async def load_tools(self) -> List[RegisteredTool]:
        documents = await self.load_documents()

        tools: Dict[str, RegisteredTool] = {}
        for document in documents:
            built = self.build_tools(document)
            for tool in built:
                if tool.name in tools:
                    logger.warning("Duplicate tool name %s; the later definition replaces the earlier one", tool.name)
                    del tools[tool.name]
                tools[tool.name] = tool
            logger.info("Converted %s tools from %s", len(built), document.source or "document")

        return list(tools.values())
