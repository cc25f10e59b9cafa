"""Request assembly and the public Discovery client."""

from __future__ import annotations

import concurrent.futures
import contextvars
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from . import __version__
from .config import ServiceConfig, load_max_workers
from .errors import MissingParameterError
from .files import is_stream, upload_details
from .logging_utils import configure_logging, log_event, request_summary
from .multipart import JSON_CONTENT_TYPE, MultipartField, build_parts
from .operations import OPERATIONS, BodyKind, Operation, OperationDescriptor
from .uri import build_uri, template_fields
from .versions import NegotiatedVersion, negotiate

logger = configure_logging()

Callback = Callable[[concurrent.futures.Future], None]
Body = Union[None, Dict[str, Any], Tuple[MultipartField, ...]]


@dataclass(frozen=True)
class RequestDescriptor:
    operation: Operation
    method: str
    uri: str
    headers: Dict[str, str] = field(default_factory=dict)
    body_kind: BodyKind = BodyKind.NONE
    body: Body = None

    @property
    def is_replayable(self) -> bool:
        """False when a multipart part streams from a file or buffer object."""
        if self.body_kind is not BodyKind.MULTIPART or not self.body:
            return True
        for part in self.body:
            content, _, _ = upload_details(part.content)
            if is_stream(content):
                return False
        return True


def _json_body(descriptor: OperationDescriptor, params: Mapping[str, Any]) -> Dict[str, Any]:
    bound = set(template_fields(descriptor.path)) | set(descriptor.query)
    return {key: value for key, value in params.items() if key not in bound and value is not None}


def build_request(
    config: ServiceConfig,
    operation: Operation,
    params: Optional[Mapping[str, Any]] = None,
) -> RequestDescriptor:
    """Describe one call to ``operation`` without performing any I/O."""
    params = params or {}
    descriptor = OPERATIONS[operation]
    uri = build_uri(
        config.service_url,
        descriptor.path,
        params,
        params,
        config.version_date,
        query_names=descriptor.query,
    )
    headers = {
        "Accept": JSON_CONTENT_TYPE,
        "User-Agent": f"discovery-mcp/{__version__}",
    }
    body: Body = None
    if descriptor.body_kind is BodyKind.JSON:
        body = _json_body(descriptor, params)
        headers["Content-Type"] = JSON_CONTENT_TYPE
    elif descriptor.body_kind is BodyKind.MULTIPART:
        body = build_parts(descriptor.parts, params)
    return RequestDescriptor(
        operation=operation,
        method=descriptor.method,
        uri=uri,
        headers=headers,
        body_kind=descriptor.body_kind,
        body=body,
    )


class DiscoveryClient:
    """Builds requests for the Discovery API and sends them in the background.

    Each operation method returns the :class:`RequestDescriptor` it built and
    hands that descriptor to the transport on a worker thread. The outcome is
    delivered to ``callback`` as a finished ``concurrent.futures.Future``.
    """

    def __init__(
        self,
        config: ServiceConfig,
        transport: Optional[Any] = None,
        executor: Optional[concurrent.futures.Executor] = None,
    ) -> None:
        self.version: NegotiatedVersion = negotiate(config)
        self.config = config
        if transport is None:
            from .transport import UrllibTransport

            transport = UrllibTransport(config)
        self.transport = transport
        self._executor = executor
        self._owns_executor = executor is None
        self._executor_lock = threading.Lock()

    def __enter__(self) -> "DiscoveryClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self, wait: bool = True) -> None:
        if not self._owns_executor:
            return
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def _get_executor(self) -> concurrent.futures.Executor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = concurrent.futures.ThreadPoolExecutor(
                    max_workers=load_max_workers(),
                    thread_name_prefix="discovery",
                )
            return self._executor

    def build_request(self, operation: Operation, params: Optional[Mapping[str, Any]] = None) -> RequestDescriptor:
        request = build_request(self.config, operation, params)
        log_event(
            logger,
            level=logging.DEBUG,
            event="request.built",
            **request_summary(request),
        )
        return request

    def submit(self, request: RequestDescriptor, callback: Optional[Callback] = None) -> concurrent.futures.Future:
        """Start sending ``request`` and return the future of its response."""
        context = contextvars.copy_context()
        future = self._get_executor().submit(context.run, self.transport.send, request)
        log_event(
            logger,
            level=logging.INFO,
            event="request.submitted",
            **request_summary(request),
        )
        future.add_done_callback(lambda done: self._log_outcome(request, done))
        if callback is not None:
            future.add_done_callback(callback)
        return future

    @staticmethod
    def _log_outcome(request: RequestDescriptor, future: concurrent.futures.Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is None:
            log_event(logger, level=logging.DEBUG, event="request.completed", operation=request.operation.value)
            return
        log_event(
            logger,
            level=logging.WARNING,
            event="request.failed",
            operation=request.operation.value,
            code=getattr(error, "code", type(error).__name__),
            message=str(error),
        )

    def _invoke(
        self,
        operation: Operation,
        params: Optional[Mapping[str, Any]],
        callback: Optional[Callback],
    ) -> Optional[RequestDescriptor]:
        try:
            request = self.build_request(operation, params)
        except MissingParameterError as exc:
            if callback is None:
                raise
            failed: concurrent.futures.Future = concurrent.futures.Future()
            failed.set_exception(exc)
            # A future that is already done runs the callback immediately.
            failed.add_done_callback(callback)
            return None
        self.submit(request, callback)
        return request

    # Environments

    def get_environments(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.GET_ENVIRONMENTS, params, callback)

    def create_environment(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.CREATE_ENVIRONMENT, params, callback)

    def update_environment(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.UPDATE_ENVIRONMENT, params, callback)

    def get_environment(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.GET_ENVIRONMENT, params, callback)

    def delete_environment(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.DELETE_ENVIRONMENT, params, callback)

    # Collections

    def create_collection(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.CREATE_COLLECTION, params, callback)

    def get_collections(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.GET_COLLECTIONS, params, callback)

    def get_collection(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.GET_COLLECTION, params, callback)

    def update_collection(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.UPDATE_COLLECTION, params, callback)

    def delete_collection(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.DELETE_COLLECTION, params, callback)

    def get_collection_fields(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.GET_COLLECTION_FIELDS, params, callback)

    # Configurations

    def get_configurations(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.GET_CONFIGURATIONS, params, callback)

    def create_configuration(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.CREATE_CONFIGURATION, params, callback)

    def get_configuration(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.GET_CONFIGURATION, params, callback)

    def update_configuration(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.UPDATE_CONFIGURATION, params, callback)

    def delete_configuration(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.DELETE_CONFIGURATION, params, callback)

    # Documents

    def add_document(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.ADD_DOCUMENT, params, callback)

    def get_document(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.GET_DOCUMENT, params, callback)

    def update_document(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.UPDATE_DOCUMENT, params, callback)

    def delete_document(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.DELETE_DOCUMENT, params, callback)

    # Queries

    def query(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.QUERY, params, callback)

    def query_notices(self, params=None, callback: Optional[Callback] = None):
        return self._invoke(Operation.QUERY_NOTICES, params, callback)
