"""Builds the ordered multipart fields of upload operations."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple, Union

from .errors import MissingParameterError
from .files import FilePart, ensure_filename

JSON_CONTENT_TYPE = "application/json"


class PartRole(enum.Enum):
    FILE = "file"
    METADATA = "metadata"
    JSON_FIELDS = "json_fields"


@dataclass(frozen=True)
class PartSpec:
    name: str
    role: PartRole
    fields: Tuple[str, ...] = ()
    defaults: Mapping[str, Any] = field(default_factory=dict)
    required: bool = False


@dataclass(frozen=True)
class MultipartField:
    name: str
    content: Union[FilePart, Any]


def dump_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def _json_part(value: Any) -> FilePart:
    text = value if isinstance(value, str) else dump_json(value)
    return FilePart(value=text, content_type=JSON_CONTENT_TYPE)


def _gather_fields(spec: PartSpec, params: Mapping[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for name in spec.fields:
        value = params.get(name)
        if value is None:
            if name not in spec.defaults:
                continue
            value = spec.defaults[name]
        payload[name] = value
    return payload


def build_parts(specs: Tuple[PartSpec, ...], params: Mapping[str, Any]) -> Tuple[MultipartField, ...]:
    missing = [spec.name for spec in specs if spec.required and params.get(spec.name) is None]
    if missing:
        raise MissingParameterError(missing)

    parts: List[MultipartField] = []
    for spec in specs:
        if spec.role is PartRole.JSON_FIELDS:
            parts.append(MultipartField(spec.name, _json_part(_gather_fields(spec, params))))
            continue
        value = params.get(spec.name)
        if value is None:
            continue
        if spec.role is PartRole.METADATA:
            parts.append(MultipartField(spec.name, _json_part(value)))
        elif spec.role is PartRole.FILE:
            parts.append(MultipartField(spec.name, ensure_filename(value)))
    return tuple(parts)
