"""Upload values and filename normalization for multipart file parts."""

from __future__ import annotations

import enum
import io
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple, Union

PLACEHOLDER_FILENAME = "_"


@dataclass(frozen=True)
class FilePart:
    value: Any
    filename: Optional[str] = None
    content_type: Optional[str] = None


class UploadKind(enum.Enum):
    NATIVE_FILE = "native_file"
    FILE_PART = "file_part"
    MAPPING = "mapping"
    BYTES = "bytes"
    TEXT = "text"
    STREAM = "stream"


def _is_readable_stream(value: Any) -> bool:
    return callable(getattr(value, "read", None))


def _mapping_options(value: Mapping[str, Any]) -> Mapping[str, Any]:
    options = value.get("options")
    if options is None:
        return {}
    if not isinstance(options, Mapping):
        raise TypeError(f"Upload options must be a mapping, not {type(options).__name__}")
    return options


def classify(value: Any) -> UploadKind:
    if isinstance(value, FilePart):
        return UploadKind.FILE_PART
    if isinstance(value, (bytes, bytearray, memoryview)):
        return UploadKind.BYTES
    if isinstance(value, str):
        return UploadKind.TEXT
    if isinstance(value, Mapping) and "value" in value:
        _mapping_options(value)
        return UploadKind.MAPPING
    if _is_readable_stream(value):
        name = getattr(value, "name", None)
        # Objects returned by open() carry the path they were opened from.
        if isinstance(name, str) and name and not isinstance(value, io.TextIOBase):
            return UploadKind.NATIVE_FILE
        return UploadKind.STREAM
    raise TypeError(f"Unsupported upload value of type {type(value).__name__}")


def ensure_filename(value: Any) -> Union[FilePart, Dict[str, Any], Any]:
    """Return an upload value that is guaranteed to carry a filename.

    Files opened from disk, ``FilePart`` instances and ``{"value", "options"}``
    mappings that already have a filename are returned as-is, so
    ``ensure_filename(x) is x`` tells the caller no wrapping happened.
    A mapping without a filename comes back as a new mapping whose
    ``options`` is a copy of the original plus ``filename="_"``. Everything
    else becomes a new ``FilePart`` named ``"_"``. The input is never modified.
    """
    kind = classify(value)
    if kind is UploadKind.NATIVE_FILE:
        return value
    if kind is UploadKind.FILE_PART:
        if value.filename:
            return value
        return replace(value, filename=PLACEHOLDER_FILENAME)
    if kind is UploadKind.MAPPING:
        options = _mapping_options(value)
        if options.get("filename"):
            return value
        return {"value": value["value"], "options": dict(options, filename=PLACEHOLDER_FILENAME)}
    if kind in (UploadKind.BYTES, UploadKind.TEXT, UploadKind.STREAM):
        return FilePart(value=value, filename=PLACEHOLDER_FILENAME)
    raise AssertionError(f"unhandled upload kind {kind}")


def upload_details(content: Any) -> Tuple[Any, Optional[str], Optional[str]]:
    """Split a part's content into ``(value, filename, content_type)``."""
    if isinstance(content, FilePart):
        return content.value, content.filename, content.content_type
    if isinstance(content, Mapping) and "value" in content:
        options = _mapping_options(content)
        content_type = options.get("content_type") or options.get("contentType")
        return content["value"], options.get("filename"), content_type
    return content, None, None


def is_stream(value: Any) -> bool:
    return not isinstance(value, (bytes, bytearray, memoryview, str)) and _is_readable_stream(value)
