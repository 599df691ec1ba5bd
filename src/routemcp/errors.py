"""Error types shared by every layer of the bridge.

Errors carry a closed ``kind`` plus structured context; the mapping to
JSON-RPC wire codes happens only at the protocol boundary via
:func:`jsonrpc_code`.
"""

from __future__ import annotations

from enum import StrEnum


class RouteMCPError(Exception):
    """Base error for all routemcp failures."""


class ConfigurationError(RouteMCPError):
    """Setup failed: bad mount path, unreadable documentation, bad config file."""


class ProtocolErrorKind(StrEnum):
    PARSE_ERROR = "parse_error"
    INVALID_REQUEST = "invalid_request"
    METHOD_NOT_FOUND = "method_not_found"
    SESSION_NOT_FOUND = "session_not_found"
    INVALID_PARAMS = "invalid_params"


class ProtocolError(RouteMCPError):
    """A message could not be routed or its parameters were malformed."""

    def __init__(self, kind: ProtocolErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(detail or kind.value.replace("_", " "))


class ExecutionErrorKind(StrEnum):
    TOOL_NOT_FOUND = "tool_not_found"
    MARSHAL = "marshal"
    TRANSPORT = "transport"
    READ = "read"


class ExecutionError(RouteMCPError):
    """A tool invocation failed while building, sending, or reading the HTTP call."""

    def __init__(self, kind: ExecutionErrorKind, tool: str, detail: str = "") -> None:
        self.kind = kind
        self.tool = tool
        self.detail = detail
        super().__init__(f"Tool execution failed: {tool}" + (f": {detail}" if detail else ""))


class ToolNotFoundError(ExecutionError):
    """Requested tool does not exist in the operation registry."""

    def __init__(self, name: str) -> None:
        self.kind = ExecutionErrorKind.TOOL_NOT_FOUND
        self.tool = name
        self.name = name
        self.detail = ""
        RouteMCPError.__init__(self, f"Tool not found: {name}")


_PROTOCOL_CODES: dict[ProtocolErrorKind, int] = {
    ProtocolErrorKind.PARSE_ERROR: -32700,
    ProtocolErrorKind.INVALID_REQUEST: -32600,
    ProtocolErrorKind.SESSION_NOT_FOUND: -32600,
    ProtocolErrorKind.METHOD_NOT_FOUND: -32601,
    ProtocolErrorKind.INVALID_PARAMS: -32602,
}


def jsonrpc_code(exc: BaseException) -> int:
    """Return the JSON-RPC error code for *exc*.

    Only dispatcher-level protocol errors get a specific code; everything
    else (including failures raised inside a handler) is an internal error.
    """
    if isinstance(exc, ProtocolError):
        return _PROTOCOL_CODES[exc.kind]
    return -32603
