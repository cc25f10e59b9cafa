"""Static catalog of the service's resource operations."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Tuple

from .multipart import PartRole, PartSpec


class BodyKind(enum.Enum):
    NONE = "none"
    JSON = "json"
    MULTIPART = "multipart"


@dataclass(frozen=True)
class OperationDescriptor:
    method: str
    path: str
    query: Tuple[str, ...] = ()
    body_kind: BodyKind = BodyKind.NONE
    parts: Tuple[PartSpec, ...] = ()


class Operation(enum.Enum):
    GET_ENVIRONMENTS = "get_environments"
    CREATE_ENVIRONMENT = "create_environment"
    UPDATE_ENVIRONMENT = "update_environment"
    GET_ENVIRONMENT = "get_environment"
    DELETE_ENVIRONMENT = "delete_environment"
    CREATE_COLLECTION = "create_collection"
    GET_COLLECTIONS = "get_collections"
    GET_COLLECTION = "get_collection"
    UPDATE_COLLECTION = "update_collection"
    DELETE_COLLECTION = "delete_collection"
    GET_COLLECTION_FIELDS = "get_collection_fields"
    GET_CONFIGURATIONS = "get_configurations"
    CREATE_CONFIGURATION = "create_configuration"
    GET_CONFIGURATION = "get_configuration"
    UPDATE_CONFIGURATION = "update_configuration"
    DELETE_CONFIGURATION = "delete_configuration"
    ADD_DOCUMENT = "add_document"
    GET_DOCUMENT = "get_document"
    UPDATE_DOCUMENT = "update_document"
    DELETE_DOCUMENT = "delete_document"
    QUERY = "query"
    QUERY_NOTICES = "query_notices"


ENVIRONMENTS = "/environments"
ENVIRONMENT = ENVIRONMENTS + "/{environment_id}"
COLLECTIONS = ENVIRONMENT + "/collections"
COLLECTION = COLLECTIONS + "/{collection_id}"
CONFIGURATIONS = ENVIRONMENT + "/configurations"
CONFIGURATION = CONFIGURATIONS + "/{configuration_id}"
DOCUMENTS = COLLECTION + "/documents"
DOCUMENT = DOCUMENTS + "/{document_id}"

QUERY_PARAMS = (
    "query",
    "natural_language_query",
    "filter",
    "aggregation",
    "count",
    "offset",
    "return",
    "sort",
    "passages",
    "passages_fields",
    "passages_count",
    "passages_characters",
    "highlight",
    "deduplicate",
    "deduplicate_field",
    "similar",
    "similar_document_ids",
    "similar_fields",
)

ENVIRONMENT_PARTS = (
    PartSpec(
        name="environment",
        role=PartRole.JSON_FIELDS,
        fields=("name", "description", "size"),
        defaults={"size": 1},
    ),
)
CONFIGURATION_PARTS = (PartSpec(name="file", role=PartRole.FILE, required=True),)
DOCUMENT_PARTS = (
    PartSpec(name="file", role=PartRole.FILE, required=True),
    PartSpec(name="metadata", role=PartRole.METADATA),
)

OPERATIONS: Dict[Operation, OperationDescriptor] = {
    Operation.GET_ENVIRONMENTS: OperationDescriptor("GET", ENVIRONMENTS, query=("name",)),
    Operation.CREATE_ENVIRONMENT: OperationDescriptor(
        "POST", ENVIRONMENTS, body_kind=BodyKind.MULTIPART, parts=ENVIRONMENT_PARTS
    ),
    Operation.UPDATE_ENVIRONMENT: OperationDescriptor("PUT", ENVIRONMENT, body_kind=BodyKind.JSON),
    Operation.GET_ENVIRONMENT: OperationDescriptor("GET", ENVIRONMENT),
    Operation.DELETE_ENVIRONMENT: OperationDescriptor("DELETE", ENVIRONMENT),
    Operation.CREATE_COLLECTION: OperationDescriptor("POST", COLLECTIONS, body_kind=BodyKind.JSON),
    Operation.GET_COLLECTIONS: OperationDescriptor("GET", COLLECTIONS, query=("name",)),
    Operation.GET_COLLECTION: OperationDescriptor("GET", COLLECTION),
    Operation.UPDATE_COLLECTION: OperationDescriptor("PUT", COLLECTION, body_kind=BodyKind.JSON),
    Operation.DELETE_COLLECTION: OperationDescriptor("DELETE", COLLECTION),
    Operation.GET_COLLECTION_FIELDS: OperationDescriptor("GET", COLLECTION + "/fields"),
    Operation.GET_CONFIGURATIONS: OperationDescriptor("GET", CONFIGURATIONS, query=("name",)),
    Operation.CREATE_CONFIGURATION: OperationDescriptor(
        "POST", CONFIGURATIONS, body_kind=BodyKind.MULTIPART, parts=CONFIGURATION_PARTS
    ),
    Operation.GET_CONFIGURATION: OperationDescriptor("GET", CONFIGURATION),
    Operation.UPDATE_CONFIGURATION: OperationDescriptor(
        "PUT", CONFIGURATION, body_kind=BodyKind.MULTIPART, parts=CONFIGURATION_PARTS
    ),
    Operation.DELETE_CONFIGURATION: OperationDescriptor("DELETE", CONFIGURATION),
    Operation.ADD_DOCUMENT: OperationDescriptor(
        "POST", DOCUMENTS, body_kind=BodyKind.MULTIPART, parts=DOCUMENT_PARTS
    ),
    Operation.GET_DOCUMENT: OperationDescriptor("GET", DOCUMENT),
    Operation.UPDATE_DOCUMENT: OperationDescriptor(
        "POST", DOCUMENT, body_kind=BodyKind.MULTIPART, parts=DOCUMENT_PARTS
    ),
    Operation.DELETE_DOCUMENT: OperationDescriptor("DELETE", DOCUMENT),
    Operation.QUERY: OperationDescriptor("GET", COLLECTION + "/query", query=QUERY_PARAMS),
    Operation.QUERY_NOTICES: OperationDescriptor("GET", COLLECTION + "/notices", query=QUERY_PARAMS),
}
