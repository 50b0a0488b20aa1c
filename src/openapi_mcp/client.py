"""HTTP dispatch for tool calls: parameter routing, security headers, requests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set
from urllib.parse import quote

import httpx

from .logging import redact_payload
from .models import SecurityScheme
from .security import CredentialProvider, EnvironmentCredentials, to_env_var_name

logger = logging.getLogger(__name__)

BODYLESS_METHODS = {"get", "delete"}
UNWRAP_METHODS = {"post", "put", "patch"}

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class MissingCredentialError(Exception):
    def __init__(self, header_name: str, env_var: str) -> None:
        self.header_name = header_name
        self.env_var = env_var
        super().__init__(
            f"Required security token '{header_name}' (environment variable: {env_var}) is missing"
        )


class ApiError(Exception):
    """Upstream answered with a non-2xx status."""

    def __init__(self, status: int, status_text: str, data: Any) -> None:
        self.status = status
        self.status_text = status_text
        self.data = data
        super().__init__(f"API Error: {status} {status_text}")


class RequestError(Exception):
    """No response was received."""

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"Request Error: {cause}")


@dataclass
class ClassifiedParameters:
    path_params: Dict[str, Any] = field(default_factory=dict)
    query_params: Dict[str, Any] = field(default_factory=dict)
    body_params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ApiResponse:
    data: Any
    status: int
    status_text: str
    headers: Dict[str, str]


def _response_data(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class ApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout_seconds: float = 30,
        security_schemes: Optional[Mapping[str, SecurityScheme]] = None,
        strict_security: bool = True,
        credentials: Optional[CredentialProvider] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url or ""
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        self.timeout_seconds = timeout_seconds
        self.security_schemes = dict(security_schemes or {})
        self.strict_security = strict_security
        self.credentials = credentials or EnvironmentCredentials()
        self.transport = transport

    def classify_parameters(self, params: Mapping[str, Any], path: str, method: str) -> ClassifiedParameters:
        method = method.lower()
        bag: Mapping[str, Any] = dict(params or {})

        # callers sometimes wrap the whole payload as {"body": {...}}
        if method in UNWRAP_METHODS and list(bag) == ["body"] and isinstance(bag["body"], Mapping):
            logger.debug("Detected wrapped body parameter, unwrapping it")
            bag = bag["body"]

        classified = ClassifiedParameters()
        for key, value in bag.items():
            if f"{{{key}}}" in path:
                classified.path_params[key] = value
            elif method in BODYLESS_METHODS:
                if key == "body":
                    logger.debug("Dropping body parameter for %s request", method.upper())
                    continue
                classified.query_params[key] = value
            else:
                classified.body_params[key] = value
        return classified

    def build_security_headers(self, security: Optional[List[Mapping[str, Any]]]) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if not security or not self.security_schemes:
            return headers

        required: Set[str] = set()
        for requirement in security:
            required.update(requirement.keys())

        for name, scheme in self.security_schemes.items():
            if name not in required or not scheme.is_header_api_key:
                continue
            env_var = to_env_var_name(scheme.header_name)
            token = self.credentials.get(env_var)
            if token:
                headers[scheme.header_name] = token
            elif self.strict_security:
                raise MissingCredentialError(scheme.header_name, env_var)
        return headers

    def build_url(self, path: str, path_params: Mapping[str, Any]) -> str:
        url = path
        for key, value in path_params.items():
            url = url.replace(f"{{{key}}}", quote(str(value), safe=""))
        return f"{self.base_url}{url}"

    async def request(
        self,
        method: str,
        path: str,
        path_params: Optional[Mapping[str, Any]] = None,
        query_params: Optional[Mapping[str, Any]] = None,
        body_params: Optional[Mapping[str, Any]] = None,
        security: Optional[List[Mapping[str, Any]]] = None,
    ) -> ApiResponse:
        method = method.lower()
        credentials = self.build_security_headers(security)
        headers = {**self.headers, **credentials}
        url = self.build_url(path, path_params or {})

        kwargs: Dict[str, Any] = {"headers": headers}
        if query_params:
            kwargs["params"] = dict(query_params)
        if method not in BODYLESS_METHODS and body_params:
            kwargs["json"] = dict(body_params)

        logger.debug("%s %s headers=%s", method.upper(), url, redact_payload(headers, credentials))
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                response = await client.request(method.upper(), url, **kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RequestError(exc) from exc

        if response.is_success:
            return ApiResponse(
                data=_response_data(response),
                status=response.status_code,
                status_text=response.reason_phrase,
                headers=dict(response.headers),
            )
        raise ApiError(response.status_code, response.reason_phrase, _response_data(response))
