"""JSON event logging for Discovery requests.

Every record is one JSON object on stderr. Credentials never reach the log:
Basic ``Authorization`` values, ``user:password@`` in URIs and the configured
password are masked, and fields that carry document content (file bodies,
metadata) are dropped to a marker.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
import re
import sys
import time
import urllib.parse
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Iterator, Mapping, Optional, Sequence

LOGGER_NAME = "discovery_mcp"
REDACTED = "[REDACTED]"

_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "discovery_correlation_id",
    default=None,
)

_CONTENT_KEYS = frozenset({"body", "file", "file_path", "metadata"})
_CREDENTIAL_KEYS = frozenset({"authorization", "password", "username", "cookie", "set-cookie"})
_BASIC_AUTH = re.compile(r"(?i)\b(basic|bearer)\s+[A-Za-z0-9+/=._~-]+")


def redact_uri(uri: str) -> str:
    """Mask the userinfo part of ``uri``, if it has one."""
    parts = urllib.parse.urlsplit(uri)
    if "@" not in parts.netloc:
        return uri
    host = parts.netloc.rsplit("@", 1)[1]
    return urllib.parse.urlunsplit(parts._replace(netloc=f"{REDACTED}@{host}"))


def _scrub_text(text: str, secrets: Sequence[str]) -> str:
    text = _BASIC_AUTH.sub(lambda match: f"{match.group(1)} {REDACTED}", text)
    if text.startswith(("http://", "https://")):
        text = redact_uri(text)
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


def redact(value: Any, secrets: Sequence[str] = ()) -> Any:
    if isinstance(value, Mapping):
        cleaned: Dict[str, Any] = {}
        for key, item in value.items():
            name = str(key).lower()
            if name in _CREDENTIAL_KEYS or name in _CONTENT_KEYS:
                cleaned[str(key)] = REDACTED
            else:
                cleaned[str(key)] = redact(item, secrets)
        return cleaned
    if isinstance(value, (list, tuple)):
        return [redact(item, secrets) for item in value]
    if isinstance(value, str):
        return _scrub_text(value, secrets)
    return value


class JsonEventFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "service": "discovery-mcp",
        }
        payload.update(getattr(record, "event_fields", {"event": record.getMessage()}))
        return json.dumps(payload, separators=(",", ":"), default=str)


def _level_from_env() -> int:
    if os.environ.get("DISCOVERY_MCP_DEBUG") == "1":
        return logging.DEBUG
    level = getattr(logging, os.environ.get("DISCOVERY_MCP_LOG_LEVEL", "INFO").upper(), None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(JsonEventFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_from_env())
        logger.propagate = False
    return logger


def log_event(
    logger: logging.Logger,
    *,
    level: int,
    event: str,
    secrets: Iterable[str] = (),
    **fields: Any,
) -> None:
    if not logger.isEnabledFor(level):
        return
    payload: Dict[str, Any] = {"event": event}
    correlation_id = _correlation_id.get()
    if correlation_id:
        payload["correlation_id"] = correlation_id
    payload.update(redact(fields, tuple(secrets)))
    logger.log(level, event, extra={"event_fields": payload})


def request_summary(request: Any) -> Dict[str, Any]:
    """Loggable view of a request descriptor: no headers, no part contents."""
    summary: Dict[str, Any] = {
        "operation": request.operation.value,
        "method": request.method,
        "uri": redact_uri(request.uri),
        "body_kind": request.body_kind.value,
    }
    if isinstance(request.body, tuple):
        summary["parts"] = [part.name for part in request.body]
    elif isinstance(request.body, Mapping):
        summary["fields"] = sorted(request.body)
    return summary


def stopwatch() -> Callable[[], int]:
    """Return a function giving the milliseconds elapsed since this call."""
    started = time.monotonic()
    return lambda: int((time.monotonic() - started) * 1000)


@contextlib.contextmanager
def correlation_id_scope(value: Optional[str]) -> Iterator[None]:
    token = _correlation_id.set(value)
    try:
        yield
    finally:
        _correlation_id.reset(token)
