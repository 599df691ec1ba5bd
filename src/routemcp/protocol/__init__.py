"""JSON-RPC protocol layer — message models, sessions, dispatch."""

from routemcp.protocol.dispatcher import DispatchResult, Dispatcher, Handler
from routemcp.protocol.models import JsonRpcErrorCode, JsonRpcRequest, JsonRpcResponse
from routemcp.protocol.sessions import SessionStore

__all__ = [
    "DispatchResult",
    "Dispatcher",
    "Handler",
    "JsonRpcErrorCode",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "SessionStore",
]
