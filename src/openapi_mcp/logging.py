"""Log setup for the server process and masking of credentials in logged values."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, Mapping, Optional

REDACTED = "***REDACTED***"

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# transport chatter that repeats every request line at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "mcp.server.lowlevel.server")

_SENSITIVE_NAME = re.compile(
    r"(token|secret|api[_-]?key|password|passwd|authorization|cookie|credential)",
    re.IGNORECASE,
)


def configure_logging(level: str, quiet_transport: Optional[bool] = None) -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT, force=True)

    if quiet_transport is None:
        quiet_transport = numeric > logging.DEBUG
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING if quiet_transport else logging.NOTSET)


def is_sensitive(name: Any, extra: Iterable[str] = ()) -> bool:
    key = str(name)
    if _SENSITIVE_NAME.search(key):
        return True
    lowered = key.lower()
    return any(lowered == candidate.lower() for candidate in extra)


def _mask(value: Any, extra: Iterable[str]) -> Any:
    if isinstance(value, Mapping):
        return redact_payload(value, extra)
    if isinstance(value, (list, tuple)):
        return [_mask(item, extra) for item in value]
    return value


def redact_payload(payload: Mapping[str, Any], extra_keys: Iterable[str] = ()) -> Dict[str, Any]:
    """Copy ``payload`` with sensitive entries masked, descending into nested mappings and lists.

    ``extra_keys`` names additional keys to mask, compared case-insensitively;
    the client passes the header names of the security schemes in play.
    """
    extra = tuple(extra_keys)
    return {
        key: REDACTED if is_sensitive(key, extra) else _mask(value, extra)
        for key, value in payload.items()
    }
