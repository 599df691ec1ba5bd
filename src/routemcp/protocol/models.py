"""MCP models — JSON-RPC 2.0 messages and MCP payloads.

Implements the server side of the message format used by the Model Context
Protocol for the handshake (``initialize``), tool discovery (``tools/list``)
and execution (``tools/call``).
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_serializer

from routemcp.models import Tool

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request, or a notification when ``id`` is absent."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: int | str | None = None
    method: str
    params: Any = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None

    @model_serializer
    def _serialize(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            data["data"] = self.data
        return data


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response; serializes exactly one of ``result``/``error``."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: int | str | None = None
    result: Any = None
    error: JsonRpcError | None = None

    @model_serializer
    def _serialize(self) -> dict[str, Any]:
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.model_dump()
        else:
            data["result"] = self.result
        return data


def error_response(
    request_id: int | str | None,
    code: int,
    message: str,
    data: Any = None,
) -> JsonRpcResponse:
    """Create a JSON-RPC error response."""
    return JsonRpcResponse(id=request_id, error=JsonRpcError(code=code, message=message, data=data))


def success_response(request_id: int | str | None, result: Any) -> JsonRpcResponse:
    """Create a JSON-RPC success response."""
    return JsonRpcResponse(id=request_id, result=result)


# ---------------------------------------------------------------------------
# MCP-specific payloads
# ---------------------------------------------------------------------------


class ServerCapabilities(BaseModel):
    """Capability flags; an empty ``tools`` object signals tool support."""

    tools: dict[str, Any] = Field(default_factory=lambda: dict[str, Any]())


class ServerInfo(BaseModel):
    name: str
    version: str


class InitializeResult(BaseModel):
    """Result of the ``initialize`` method."""

    model_config = ConfigDict(populate_by_name=True)

    protocol_version: str = Field(alias="protocolVersion")
    capabilities: ServerCapabilities = Field(default_factory=ServerCapabilities)
    server_info: ServerInfo = Field(alias="serverInfo")


class ToolsListResult(BaseModel):
    """Result of the ``tools/list`` method."""

    tools: list[Tool]


class ToolCallParams(BaseModel):
    """Parameters for the ``tools/call`` method. A null ``arguments`` means no arguments."""

    model_config = ConfigDict(strict=True)

    name: str = Field(min_length=1)
    arguments: dict[str, Any] = Field(default_factory=lambda: dict[str, Any]())

    @field_validator("arguments", mode="before")
    @classmethod
    def _null_arguments(cls, value: Any) -> Any:
        return {} if value is None else value


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolCallResult(BaseModel):
    """Result of the ``tools/call`` method."""

    content: list[TextContent]
