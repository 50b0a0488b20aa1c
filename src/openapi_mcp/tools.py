"""Tool handlers: validate arguments, dispatch the HTTP call, format the result."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

from .client import ApiClient, ApiError, MissingCredentialError, RequestError
from .logging import redact_payload
from .models import ToolDefinition
from .schema import SchemaValidationError

logger = logging.getLogger(__name__)


def format_result(data: Any) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": json.dumps(data, indent=2, default=str)}]}


def format_error(message: str, details: Any = None) -> Dict[str, Any]:
    if details is None or details == "":
        details = {}
    text = f"Error: {message}\n{json.dumps(details, indent=2, default=str)}"
    return {"content": [{"type": "text", "text": text}]}


class ToolHandler:
    """Callable bound to one tool definition and one API client.

    The handler never raises: validation, credential, upstream and
    transport failures all come back as a text result starting with
    ``Error:``.
    """

    def __init__(self, tool: ToolDefinition, client: ApiClient) -> None:
        self.tool = tool
        self.client = client

    def validate_arguments(self, params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        return self.tool.parameter_schema.validate(dict(params or {}), self.tool.arena)

    async def __call__(self, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        tool = self.tool
        logger.info("Executing tool=%s params=%s", tool.name, redact_payload(params or {}))
        try:
            arguments = self.validate_arguments(params)
            classified = self.client.classify_parameters(arguments, tool.path, tool.method)
            response = await self.client.request(
                method=tool.method,
                path=tool.path,
                path_params=classified.path_params,
                query_params=classified.query_params,
                body_params=classified.body_params,
                security=tool.security,
            )
        except SchemaValidationError as exc:
            logger.warning("Invalid arguments for tool=%s: %s", tool.name, exc)
            return format_error(f"Invalid arguments: {exc}")
        except ApiError as exc:
            logger.warning("Tool %s failed: %s", tool.name, exc)
            return format_error(str(exc), exc.data)
        except (MissingCredentialError, RequestError) as exc:
            logger.warning("Tool %s failed: %s", tool.name, exc)
            return format_error(str(exc))
        except Exception as exc:
            logger.exception("Unexpected failure in tool %s", tool.name)
            return format_error(str(exc))

        return format_result(response.data)
