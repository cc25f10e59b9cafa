import io
import json
import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from discovery_mcp.errors import MissingParameterError
from discovery_mcp.files import FilePart
from discovery_mcp.multipart import PartRole, PartSpec, build_parts
from discovery_mcp.operations import DOCUMENT_PARTS, ENVIRONMENT_PARTS


def _json_parts(parts):
    result = []
    for part in parts:
        content = part.content
        if isinstance(content, FilePart) and content.content_type == "application/json":
            result.append(json.loads(content.value))
    return result


def test_environment_size_defaults_to_one():
    parts = build_parts(ENVIRONMENT_PARTS, {"name": "new environment", "description": "my description"})
    assert len(parts) == 1
    assert _json_parts(parts) == [{"name": "new environment", "description": "my description", "size": 1}]


@pytest.mark.parametrize("size", [0, 2])
def test_environment_size_is_preserved_when_given(size):
    parts = build_parts(ENVIRONMENT_PARTS, {"name": "new environment", "size": size})
    assert _json_parts(parts) == [{"name": "new environment", "size": size}]


def test_environment_json_is_compact():
    parts = build_parts(ENVIRONMENT_PARTS, {"name": "env"})
    assert parts[0].content.value == '{"name":"env","size":1}'


def test_document_metadata_part_is_omitted_when_absent():
    parts = build_parts(DOCUMENT_PARTS, {"file": b"<html></html>"})
    assert [part.name for part in parts] == ["file"]
    assert parts[0].content == FilePart(value=b"<html></html>", filename="_")


def test_document_metadata_is_serialized_after_file():
    stream = io.BytesIO(b"<html></html>")
    parts = build_parts(DOCUMENT_PARTS, {"metadata": {"action": "testing"}, "file": stream})
    assert [part.name for part in parts] == ["file", "metadata"]
    assert parts[0].content.value is stream
    assert parts[1].content == FilePart(value='{"action":"testing"}', content_type="application/json")


def test_metadata_strings_are_sent_as_is():
    parts = build_parts(DOCUMENT_PARTS, {"file": "text", "metadata": '{"a": 1}'})
    assert parts[1].content.value == '{"a": 1}'


def test_required_file_part():
    with pytest.raises(MissingParameterError) as excinfo:
        build_parts(DOCUMENT_PARTS, {"metadata": {"action": "testing"}})
    assert excinfo.value.missing == ["file"]


def test_part_order_follows_declaration():
    specs = (
        PartSpec(name="b", role=PartRole.FILE),
        PartSpec(name="a", role=PartRole.METADATA),
    )
    parts = build_parts(specs, {"a": {"x": 1}, "b": "data"})
    assert [part.name for part in parts] == ["b", "a"]
