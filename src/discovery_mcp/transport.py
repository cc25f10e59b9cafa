"""Default urllib transport for request descriptors."""

from __future__ import annotations

import base64
import json
import logging
import mimetypes
import os
import random
import time
import urllib.error
import urllib.request
import uuid
from dataclasses import dataclass
from email.utils import parsedate_to_datetime
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple, Union

from .config import RetryConfig, ServiceConfig, load_retry_config, load_timeout
from .errors import TransportError
from .files import upload_details
from .logging_utils import configure_logging, log_event, stopwatch
from .multipart import MultipartField, dump_json
from .operations import BodyKind

logger = configure_logging()

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class Response:
    status: int
    headers: Dict[str, str]
    data: Any


def infer_content_type(filename: Optional[str]) -> str:
    if filename:
        guess, _ = mimetypes.guess_type(filename)
        if guess:
            return guess
    return "application/octet-stream"


def _part_details(content: Any) -> Tuple[Any, Optional[str], Optional[str]]:
    value, filename, content_type = upload_details(content)
    if value is content and filename is None:
        # Native file objects name the upload after the file they were opened from.
        name = getattr(content, "name", None)
        if isinstance(name, str):
            filename = os.path.basename(name) or None
    return value, filename, content_type


def _iter_value(value: Any) -> Iterator[bytes]:
    if isinstance(value, str):
        yield value.encode("utf-8")
        return
    if isinstance(value, (bytes, bytearray, memoryview)):
        yield bytes(value)
        return
    while True:
        chunk = value.read(CHUNK_SIZE)
        if not chunk:
            return
        yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk


def _quote_header(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def encode_multipart(fields: Iterable[MultipartField], boundary: str) -> Iterator[bytes]:
    """Yield the multipart/form-data encoding of ``fields``.

    Stream values are read chunk by chunk while the body is being sent.
    """
    for part in fields:
        value, filename, content_type = _part_details(part.content)
        disposition = f'form-data; name="{_quote_header(part.name)}"'
        if filename:
            disposition += f'; filename="{_quote_header(filename)}"'
            content_type = content_type or infer_content_type(filename)
        head = f"--{boundary}\r\nContent-Disposition: {disposition}\r\n"
        if content_type:
            head += f"Content-Type: {content_type}\r\n"
        yield (head + "\r\n").encode("utf-8")
        yield from _iter_value(value)
        yield b"\r\n"
    yield f"--{boundary}--\r\n".encode("utf-8")


def _sleep_backoff(attempt: int, config: RetryConfig) -> None:
    if attempt <= 1:
        return
    delay = min(config.max_delay, config.base_delay * (2 ** (attempt - 2)))
    if delay <= 0:
        return
    jitter = delay * random.uniform(0.0, 0.2)
    time.sleep(delay + jitter)


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    text = value.strip()
    if not text:
        return None
    try:
        seconds = float(text)
        if seconds < 0:
            return None
        return seconds
    except ValueError:
        pass
    try:
        dt = parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None
    if dt is None:
        return None
    return max(0.0, dt.timestamp() - time.time())


def _should_retry_http(status: int) -> bool:
    if status == 429:
        return True
    if 500 <= status <= 599:
        return True
    return False


def _normalize_headers(headers: Optional[Any]) -> Dict[str, str]:
    if not headers:
        return {}
    return {str(key).lower(): str(value) for key, value in headers.items()}


def _build_http_error_details(status: int, payload: str, headers: Optional[Any]) -> Dict[str, Any]:
    details: Dict[str, Any] = {"status": status}
    if payload:
        details["body"] = payload
    normalized = _normalize_headers(headers)
    retry_after = normalized.get("retry-after")
    if retry_after:
        details["retry_after"] = retry_after
    request_id = normalized.get("x-global-transaction-id") or normalized.get("x-request-id")
    if request_id:
        details["request_id"] = request_id
    return details


def _raise_for_http_error(status: int, payload: str, headers: Optional[Any]) -> None:
    details = _build_http_error_details(status, payload, headers)
    if status == 401 or status == 403:
        raise TransportError("DISCOVERY_AUTH_ERROR", "Discovery authentication failed.", details)
    if status == 404:
        raise TransportError("DISCOVERY_NOT_FOUND", "Discovery resource not found.", details)
    if status == 429:
        raise TransportError("DISCOVERY_RATE_LIMITED", "Discovery rate limit exceeded.", details)
    if status in (400, 409, 413, 415, 422):
        raise TransportError("DISCOVERY_VALIDATION_ERROR", "Discovery rejected the request.", details)
    if 500 <= status <= 599:
        raise TransportError("DISCOVERY_UPSTREAM_ERROR", "Discovery service error.", details)
    raise TransportError("DISCOVERY_UPSTREAM_ERROR", "Discovery request failed.", details)


def _decode_body(raw: bytes) -> Any:
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


class UrllibTransport:
    """Sends request descriptors with ``urllib.request``.

    Adds Basic authentication, retries 429/5xx responses and network errors
    with exponential backoff (honouring ``Retry-After``) and maps HTTP errors
    onto :class:`TransportError` codes. Requests whose body streams from a file
    are sent once, since the stream cannot be rewound reliably.
    """

    def __init__(self, config: ServiceConfig, timeout: Optional[float] = None) -> None:
        self.config = config
        self.timeout = timeout if timeout is not None else load_timeout()

    @property
    def _secrets(self) -> Tuple[str, ...]:
        return tuple(secret for secret in (self.config.password,) if secret)

    def _auth_headers(self) -> Dict[str, str]:
        if not self.config.username and not self.config.password:
            return {}
        token = f"{self.config.username}:{self.config.password}".encode("utf-8")
        return {"Authorization": "Basic " + base64.b64encode(token).decode("ascii")}

    def _encode_body(self, request) -> Tuple[Optional[Union[bytes, Iterator[bytes]]], Dict[str, str]]:
        headers: Dict[str, str] = {}
        if request.body_kind is BodyKind.JSON:
            return dump_json(request.body).encode("utf-8"), headers
        if request.body_kind is BodyKind.MULTIPART:
            boundary = uuid.uuid4().hex
            headers["Content-Type"] = f"multipart/form-data; boundary={boundary}"
            chunks = encode_multipart(request.body or (), boundary)
            if request.is_replayable:
                return b"".join(chunks), headers
            return chunks, headers
        return None, headers

    def send(self, request) -> Response:
        elapsed = stopwatch()
        headers = dict(request.headers)
        headers.update(self._auth_headers())
        data, body_headers = self._encode_body(request)
        headers.update(body_headers)
        retry_config = load_retry_config()
        max_attempts = retry_config.max_attempts if request.is_replayable else 1
        last_error: Optional[Exception] = None
        retry_after_seconds: Optional[float] = None
        for attempt in range(1, max_attempts + 1):
            if retry_after_seconds is not None:
                log_event(
                    logger,
                    level=logging.INFO,
                    event="discovery.retry_after",
                    method=request.method,
                    uri=request.uri,
                    seconds=retry_after_seconds,
                    attempt=attempt,
                )
                if retry_after_seconds > 0:
                    time.sleep(retry_after_seconds)
                retry_after_seconds = None
            else:
                _sleep_backoff(attempt, retry_config)
            http_request = urllib.request.Request(url=request.uri, method=request.method, headers=headers, data=data)
            try:
                with urllib.request.urlopen(http_request, timeout=self.timeout) as response:
                    payload = _decode_body(response.read())
                    headers_out = _normalize_headers(response.headers)
                    log_event(
                        logger,
                        level=logging.INFO,
                        event="discovery.request",
                        method=request.method,
                        uri=request.uri,
                        status=response.status,
                        attempt=attempt,
                        duration_ms=elapsed(),
                        secrets=self._secrets,
                    )
                    return Response(status=response.status, headers=headers_out, data=payload)
            except urllib.error.HTTPError as exc:
                status = exc.code
                payload = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
                details = _build_http_error_details(status, payload, exc.headers)
                log_event(
                    logger,
                    level=logging.WARNING,
                    event="discovery.request_error",
                    method=request.method,
                    uri=request.uri,
                    status=status,
                    attempt=attempt,
                    duration_ms=elapsed(),
                    secrets=self._secrets,
                )
                if status == 429:
                    retry_after_seconds = _parse_retry_after(details.get("retry_after"))
                if _should_retry_http(status) and attempt < max_attempts:
                    last_error = exc
                    continue
                _raise_for_http_error(status, payload, exc.headers)
            except urllib.error.URLError as exc:
                log_event(
                    logger,
                    level=logging.WARNING,
                    event="discovery.request_error",
                    method=request.method,
                    uri=request.uri,
                    status=None,
                    attempt=attempt,
                    duration_ms=elapsed(),
                    secrets=self._secrets,
                )
                retry_after_seconds = None
                if attempt < max_attempts:
                    last_error = exc
                    continue
                raise TransportError(
                    "DISCOVERY_UPSTREAM_ERROR", "Discovery request failed.", {"reason": str(exc)}
                ) from exc

        reason = str(last_error) if last_error else "unknown"
        raise TransportError("DISCOVERY_UPSTREAM_ERROR", "Discovery request failed.", {"reason": reason})
