"""MCP stdio server exposing Discovery operations as tools (SDK-based)."""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from typing import Any, Dict, List, Optional

import mcp.server.stdio
import mcp.types as types
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from . import __version__
from .client import DiscoveryClient, RequestDescriptor
from .config import ServiceConfig, load_config_from_env, load_upload_max_bytes
from .errors import DiscoveryError
from .logging_utils import configure_logging, correlation_id_scope, log_event, stopwatch
from .operations import Operation

server = Server("discovery-mcp")
logger = configure_logging()

DEFAULT_COUNT = 10

_ERROR_SCHEMA = {
    "type": ["object", "null"],
    "properties": {
        "code": {"type": "string"},
        "message": {"type": "string"},
        "details": {"type": "object"},
    },
}


def _output_schema(data_properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "ok": {"type": "boolean"},
            "data": {"type": ["object", "null"], "properties": data_properties},
            "error": _ERROR_SCHEMA,
        },
        "required": ["ok", "data", "error"],
    }


def _tool_list() -> List[types.Tool]:
    return [
        types.Tool(
            name="discovery_list_environments",
            description="List the Discovery environments available to the configured credentials.",
            inputSchema={
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                },
            },
            outputSchema=_output_schema({"environments": {"type": "array"}}),
        ),
        types.Tool(
            name="discovery_list_collections",
            description="List collections in a Discovery environment.",
            inputSchema={
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "environment_id": {"type": "string", "minLength": 1},
                    "name": {"type": "string", "minLength": 1},
                },
                "required": ["environment_id"],
            },
            outputSchema=_output_schema({"collections": {"type": "array"}}),
        ),
        types.Tool(
            name="discovery_query",
            description="Query a Discovery collection with a filter or a natural language question.",
            inputSchema={
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "environment_id": {"type": "string", "minLength": 1},
                    "collection_id": {"type": "string", "minLength": 1},
                    "natural_language_query": {"type": "string", "minLength": 1},
                    "query": {"type": "string", "minLength": 1},
                    "filter": {"type": "string", "minLength": 1},
                    "count": {"type": "integer", "minimum": 1, "maximum": 100, "default": DEFAULT_COUNT},
                    "offset": {"type": "integer", "minimum": 0},
                    "sort": {"type": "string", "minLength": 1},
                    "passages": {"type": "boolean"},
                },
                "required": ["environment_id", "collection_id"],
            },
            outputSchema=_output_schema(
                {
                    "matching_results": {"type": "integer"},
                    "results": {"type": "array"},
                    "passages": {"type": "array"},
                }
            ),
        ),
        types.Tool(
            name="discovery_add_document",
            description="Upload a local file into a Discovery collection, with optional metadata.",
            inputSchema={
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "environment_id": {"type": "string", "minLength": 1},
                    "collection_id": {"type": "string", "minLength": 1},
                    "file_path": {"type": "string", "minLength": 1},
                    "metadata": {"type": "object"},
                },
                "required": ["environment_id", "collection_id", "file_path"],
            },
            outputSchema=_output_schema(
                {
                    "document_id": {"type": "string"},
                    "status": {"type": "string"},
                }
            ),
        ),
        types.Tool(
            name="discovery_delete_document",
            description="Delete a document from a Discovery collection.",
            inputSchema={
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "environment_id": {"type": "string", "minLength": 1},
                    "collection_id": {"type": "string", "minLength": 1},
                    "document_id": {"type": "string", "minLength": 1},
                },
                "required": ["environment_id", "collection_id", "document_id"],
            },
            outputSchema=_output_schema(
                {
                    "document_id": {"type": "string"},
                    "status": {"type": "string"},
                }
            ),
        ),
    ]


@server.list_tools()
async def list_tools() -> List[types.Tool]:
    return _tool_list()


def _check_upload_path(file_path: str) -> int:
    """Return the size of a readable regular file no larger than the upload limit."""
    try:
        stat = os.stat(file_path)
    except FileNotFoundError:
        raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", "file_path does not exist.") from None
    except OSError as exc:
        raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", "file_path is not readable.", {"reason": str(exc)}) from exc
    if not os.path.isfile(file_path):
        raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", "file_path must point to a local file.")
    if not os.access(file_path, os.R_OK):
        raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", "file_path is not readable.")
    limit = load_upload_max_bytes()
    if stat.st_size > limit:
        raise DiscoveryError(
            "DISCOVERY_VALIDATION_ERROR",
            "file_path exceeds upload size limit.",
            {"size": stat.st_size, "max_bytes": limit},
        )
    return stat.st_size


def _require_object(args: Any) -> Dict[str, Any]:
    if not isinstance(args, dict):
        raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", "Arguments must be an object.")
    return args


def _require_id(args: Dict[str, Any], key: str) -> str:
    value = args.get(key)
    if not isinstance(value, str) or not value.strip():
        raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", f"{key} is required and must be a non-empty string.")
    return value.strip()


def _optional_text(args: Dict[str, Any], key: str) -> Optional[str]:
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", f"{key} must be a non-empty string when provided.")
    return value.strip()


def _validate_list_environments_args(args: Dict[str, Any]) -> Dict[str, Any]:
    args = _require_object(args)
    return {"name": _optional_text(args, "name")}


def _validate_list_collections_args(args: Dict[str, Any]) -> Dict[str, Any]:
    args = _require_object(args)
    return {"environment_id": _require_id(args, "environment_id"), "name": _optional_text(args, "name")}


def _validate_query_args(args: Dict[str, Any]) -> Dict[str, Any]:
    args = _require_object(args)
    validated: Dict[str, Any] = {
        "environment_id": _require_id(args, "environment_id"),
        "collection_id": _require_id(args, "collection_id"),
        "natural_language_query": _optional_text(args, "natural_language_query"),
        "query": _optional_text(args, "query"),
        "filter": _optional_text(args, "filter"),
        "sort": _optional_text(args, "sort"),
    }
    if validated["query"] and validated["natural_language_query"]:
        raise DiscoveryError(
            "DISCOVERY_VALIDATION_ERROR",
            "Provide only one of query or natural_language_query.",
        )
    count = args.get("count", DEFAULT_COUNT)
    if not isinstance(count, int) or isinstance(count, bool):
        raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", "count must be an integer.")
    if count < 1 or count > 100:
        raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", "count must be between 1 and 100.")
    validated["count"] = count
    offset = args.get("offset")
    if offset is not None:
        if not isinstance(offset, int) or isinstance(offset, bool):
            raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", "offset must be an integer.")
        if offset < 0:
            raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", "offset must be greater than or equal to 0.")
    validated["offset"] = offset
    passages = args.get("passages")
    if passages is not None and not isinstance(passages, bool):
        raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", "passages must be a boolean.")
    validated["passages"] = passages
    return validated


def _validate_add_document_args(args: Dict[str, Any]) -> Dict[str, Any]:
    args = _require_object(args)
    environment_id = _require_id(args, "environment_id")
    collection_id = _require_id(args, "collection_id")
    file_path = args.get("file_path")
    if not isinstance(file_path, str) or not file_path.strip():
        raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", "file_path is required and must be a non-empty string.")
    file_path = file_path.strip()
    _check_upload_path(file_path)
    metadata = args.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise DiscoveryError("DISCOVERY_VALIDATION_ERROR", "metadata must be an object when provided.")
    return {
        "environment_id": environment_id,
        "collection_id": collection_id,
        "file_path": file_path,
        "metadata": metadata or None,
    }


def _validate_delete_document_args(args: Dict[str, Any]) -> Dict[str, Any]:
    args = _require_object(args)
    return {
        "environment_id": _require_id(args, "environment_id"),
        "collection_id": _require_id(args, "collection_id"),
        "document_id": _require_id(args, "document_id"),
    }


def _ok(data: Any) -> Dict[str, Any]:
    return {"ok": True, "data": data, "error": None}


def _err(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return {"ok": False, "data": None, "error": {"code": code, "message": message, "details": details or {}}}


async def _send(client: DiscoveryClient, request: RequestDescriptor) -> Any:
    response = await asyncio.wrap_future(client.submit(request))
    return response.data if response.data is not None else {}


def _as_dict(data: Any) -> Dict[str, Any]:
    return data if isinstance(data, dict) else {}


async def _run_tool(client: DiscoveryClient, name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    if name == "discovery_list_environments":
        validated = _validate_list_environments_args(arguments)
        data = _as_dict(await _send(client, client.build_request(Operation.GET_ENVIRONMENTS, validated)))
        return {"environments": data.get("environments", [])}
    if name == "discovery_list_collections":
        validated = _validate_list_collections_args(arguments)
        data = _as_dict(await _send(client, client.build_request(Operation.GET_COLLECTIONS, validated)))
        return {"collections": data.get("collections", [])}
    if name == "discovery_query":
        validated = _validate_query_args(arguments)
        data = _as_dict(await _send(client, client.build_request(Operation.QUERY, validated)))
        payload: Dict[str, Any] = {
            "matching_results": data.get("matching_results", 0),
            "results": data.get("results", []),
        }
        if "passages" in data:
            payload["passages"] = data["passages"]
        return payload
    if name == "discovery_add_document":
        validated = _validate_add_document_args(arguments)
        with open(validated.pop("file_path"), "rb") as handle:
            request = client.build_request(Operation.ADD_DOCUMENT, dict(validated, file=handle))
            data = _as_dict(await _send(client, request))
        return {"document_id": data.get("document_id", ""), "status": data.get("status", "")}
    if name == "discovery_delete_document":
        validated = _validate_delete_document_args(arguments)
        data = _as_dict(await _send(client, client.build_request(Operation.DELETE_DOCUMENT, validated)))
        return {
            "document_id": data.get("document_id", validated["document_id"]),
            "status": data.get("status", "deleted"),
        }
    raise ValueError(f"Unknown tool: {name}")


_clients: Dict[ServiceConfig, DiscoveryClient] = {}


def _client_for(config: ServiceConfig) -> DiscoveryClient:
    # One client, and so one worker pool, per distinct configuration.
    client = _clients.get(config)
    if client is None:
        client = _clients.setdefault(config, DiscoveryClient(config))
    return client


def close_clients(wait: bool = True) -> None:
    while _clients:
        _, client = _clients.popitem()
        client.close(wait=wait)


@server.call_tool()
async def call_tool(name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    correlation_id = str(uuid.uuid4())
    with correlation_id_scope(correlation_id):
        elapsed = stopwatch()
        log_event(logger, level=logging.INFO, event="tool.call", tool=name, args=arguments or {})
        try:
            config = load_config_from_env()
            payload = await _run_tool(_client_for(config), name, arguments or {})
            log_event(
                logger,
                level=logging.INFO,
                event="tool.success",
                tool=name,
                duration_ms=elapsed(),
            )
            return _ok(payload)
        except DiscoveryError as exc:
            log_event(
                logger,
                level=logging.WARNING,
                event="tool.error",
                tool=name,
                code=exc.code,
                message=exc.message,
                details=exc.details,
                duration_ms=elapsed(),
            )
            return _err(exc.code, exc.message, exc.details)


async def run() -> None:
    debug = os.environ.get("DISCOVERY_MCP_DEBUG") == "1"
    log_event(logger, level=logging.INFO, event="server.start", version=__version__, debug=debug)
    options = InitializationOptions(
        server_name="discovery-mcp",
        server_version=__version__,
        capabilities=server.get_capabilities(
            notification_options=NotificationOptions(),
            experimental_capabilities={},
        ),
    )
    try:
        async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, options)
    finally:
        await asyncio.to_thread(close_clients)
        log_event(logger, level=logging.INFO, event="server.stop")


def main() -> int:
    asyncio.run(run())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
