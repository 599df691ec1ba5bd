"""Dispatcher — routes JSON-RPC messages to registered method handlers.

Every message ends in a response envelope: unknown methods, unknown
sessions and handler failures are reported as JSON-RPC errors, never raised.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from routemcp._rwlock import ReadWriteLock
from routemcp.errors import (
    ProtocolError,
    ProtocolErrorKind,
    RouteMCPError,
    jsonrpc_code,
)
from routemcp.protocol.models import (
    JsonRpcErrorCode,
    JsonRpcRequest,
    JsonRpcResponse,
    error_response,
    success_response,
)
from routemcp.protocol.sessions import SessionStore
from routemcp.telemetry import ATTR_RPC_METHOD, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

Handler = Callable[[Any], Awaitable[Any]]

INITIALIZE = "initialize"


@dataclass(frozen=True)
class DispatchResult:
    """The response envelope plus the session created by a handshake, if any."""

    response: JsonRpcResponse
    session_id: str | None = None


class Dispatcher:
    """Maintains a method-to-handler map and the session store.

    Usage::

        dispatcher = Dispatcher()
        dispatcher.register_handler("tools/list", list_tools)

        result = await dispatcher.dispatch(request, session_id=header_value)
        result.response     # JSON-RPC envelope
        result.session_id   # set when the message was ``initialize``
    """

    def __init__(self, sessions: SessionStore | None = None) -> None:
        self._handlers: dict[str, Handler] = {}
        self._lock = ReadWriteLock()
        self.sessions = sessions or SessionStore()

    def register_handler(self, method: str, handler: Handler) -> None:
        """Register (or replace) the handler for *method*."""
        with self._lock.write():
            self._handlers[method] = handler

    def has_handler(self, method: str) -> bool:
        return self._lookup(method) is not None

    def _lookup(self, method: str) -> Handler | None:
        with self._lock.read():
            return self._handlers.get(method)

    async def dispatch_raw(self, data: Any, session_id: str | None = None) -> DispatchResult:
        """Validate a decoded JSON value as a request, then dispatch it."""
        if not isinstance(data, dict):
            return DispatchResult(_protocol_error(None, ProtocolError(
                ProtocolErrorKind.INVALID_REQUEST, "Request must be a JSON object"
            )))
        try:
            request = JsonRpcRequest.model_validate(data)
        except ValidationError as exc:
            request_id = data.get("id")
            if not isinstance(request_id, (int, str)):
                request_id = None
            return DispatchResult(_protocol_error(request_id, ProtocolError(
                ProtocolErrorKind.INVALID_REQUEST, f"Invalid request: {exc.error_count()} validation error(s)"
            )))
        return await self.dispatch(request, session_id)

    async def dispatch(self, request: JsonRpcRequest, session_id: str | None = None) -> DispatchResult:
        """Route one request to its handler and wrap the outcome."""
        logger.debug("MCP request: method=%s, id=%s", request.method, request.id)

        if request.method == INITIALIZE:
            response = await self._invoke(request)
            if response.error is not None:
                return DispatchResult(response)
            return DispatchResult(response, self.sessions.create().id)

        if session_id and not self.sessions.exists(session_id):
            return DispatchResult(_protocol_error(request.id, ProtocolError(
                ProtocolErrorKind.SESSION_NOT_FOUND, f"Session not found: {session_id}"
            )))

        return DispatchResult(await self._invoke(request))

    async def _invoke(self, request: JsonRpcRequest) -> JsonRpcResponse:
        handler = self._lookup(request.method)
        if handler is None:
            return _protocol_error(request.id, ProtocolError(
                ProtocolErrorKind.METHOD_NOT_FOUND, f"Method '{request.method}' not found"
            ))

        with _tracer.start_as_current_span("routemcp.rpc.dispatch") as span:
            span.set_attribute(ATTR_RPC_METHOD, request.method)
            try:
                result = await handler(request.params)
            except Exception as exc:
                logger.warning("Handler for %s failed: %s", request.method, exc)
                kind = getattr(exc, "kind", None) if isinstance(exc, RouteMCPError) else None
                data = {"kind": str(kind)} if kind else None
                return error_response(request.id, JsonRpcErrorCode.INTERNAL_ERROR, str(exc), data)

        if isinstance(result, BaseModel):
            result = result.model_dump(by_alias=True, exclude_none=True)
        return success_response(request.id, result)


def _protocol_error(request_id: int | str | None, exc: ProtocolError) -> JsonRpcResponse:
    return error_response(request_id, jsonrpc_code(exc), str(exc))
