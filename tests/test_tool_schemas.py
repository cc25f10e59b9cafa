import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from discovery_mcp import server as server_module


def _tool_by_name(name):
    for tool in server_module._tool_list():
        if tool.name == name:
            return tool
    raise AssertionError(f"missing tool: {name}")


def test_tool_list_names():
    names = {tool.name for tool in server_module._tool_list()}
    assert names == {
        "discovery_list_environments",
        "discovery_list_collections",
        "discovery_query",
        "discovery_add_document",
        "discovery_delete_document",
    }


def test_tool_schemas_basic_shape():
    for tool in server_module._tool_list():
        assert tool.inputSchema["type"] == "object"
        assert tool.inputSchema["additionalProperties"] is False
        assert tool.outputSchema["type"] == "object"
        assert tool.outputSchema["additionalProperties"] is False
        required = set(tool.outputSchema["required"])
        assert {"ok", "data", "error"}.issubset(required)


def test_query_schema_details():
    schema = _tool_by_name("discovery_query").inputSchema
    assert set(schema["required"]) == {"environment_id", "collection_id"}
    assert schema["properties"]["count"]["minimum"] == 1
    assert schema["properties"]["count"]["maximum"] == 100
    assert schema["properties"]["offset"]["minimum"] == 0
    assert schema["properties"]["passages"]["type"] == "boolean"


def test_add_document_schema_details():
    schema = _tool_by_name("discovery_add_document").inputSchema
    assert set(schema["required"]) == {"environment_id", "collection_id", "file_path"}
    assert schema["properties"]["metadata"]["type"] == "object"


def test_delete_document_schema_details():
    schema = _tool_by_name("discovery_delete_document").inputSchema
    assert set(schema["required"]) == {"environment_id", "collection_id", "document_id"}
    for key in schema["required"]:
        assert schema["properties"][key]["minLength"] == 1
