"""MCPServer — exposes a web application's routes as MCP tools.

Usage::

    from starlette.applications import Starlette
    from routemcp import MCPServer, ServerConfig, StarletteRouteProvider

    app = Starlette(routes=[...])
    mcp = MCPServer(StarletteRouteProvider(app), ServerConfig(base_url="http://localhost:8000"))
    mcp.set_exclude(["/health"])
    mcp.mount(app, "/mcp")
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from routemcp._rwlock import ReadWriteLock
from routemcp.builder import build_tools, schema_key
from routemcp.config import DEFAULT_SERVER_VERSION, ServerConfig
from routemcp.errors import ConfigurationError, ProtocolError, ProtocolErrorKind
from routemcp.execution import ExecutionEngine
from routemcp.models import Operation, RegisteredSchema, Tool
from routemcp.protocol.dispatcher import INITIALIZE, Dispatcher
from routemcp.protocol.models import (
    InitializeResult,
    ServerInfo,
    TextContent,
    ToolCallParams,
    ToolCallResult,
    ToolsListResult,
)
from routemcp.routing import filter_routes
from routemcp.telemetry import configure_telemetry
from routemcp.transport import HTTPTransport

if TYPE_CHECKING:
    from routemcp.routing import RouteProvider
    from routemcp.schema.docs import ApiDocument, DocumentationProvider

logger = logging.getLogger(__name__)

DEFAULT_MOUNT_PATH = "/mcp"


class MCPServer:
    """Builds tools from a route table and serves them over JSON-RPC."""

    def __init__(
        self,
        routes: RouteProvider,
        config: ServerConfig | None = None,
        documentation: DocumentationProvider | None = None,
        engine: ExecutionEngine | None = None,
    ) -> None:
        self.config = config or ServerConfig()
        self._routes = routes
        self._include = list(self.config.include_operations)
        self._exclude = list(self.config.exclude_operations)
        self._registered: dict[str, RegisteredSchema] = {}
        self._lock = ReadWriteLock()
        self._registry: tuple[list[Tool], dict[str, Operation]] = ([], {})
        self._mount_path: str | None = None

        self.engine = engine or ExecutionEngine(self.config.base_url, timeout=self.config.timeout)
        self.dispatcher = Dispatcher()
        self.transport: HTTPTransport | None = None

        self.document: ApiDocument | None = None
        if self.config.enable_doc_schemas and documentation is not None:
            self.document = documentation.get_spec()

        self.name = self.config.name
        self.version = self.config.version
        self.description = self.config.description
        info = self.document.info if self.document is not None else None
        if info is not None:
            self.name = self.name or info.title
            self.version = self.version or info.version
            self.description = self.description or info.description

        telemetry = self.config.telemetry
        if telemetry is not None and telemetry.enabled:
            configure_telemetry(
                self.name or "routemcp",
                console=telemetry.console,
                otlp_endpoint=telemetry.otlp_endpoint,
            )

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def register_schema(
        self,
        method: str,
        path: str,
        query_schema: Any = None,
        body_schema: Any = None,
    ) -> None:
        """Attach type descriptors to one route; used when it is undocumented."""
        key = schema_key(method, path)
        with self._lock.write():
            self._registered[key] = RegisteredSchema(query_schema=query_schema, body_schema=body_schema)
        logger.debug("Registered schema for %s", key)

    def set_include(self, patterns: Sequence[str]) -> None:
        """Expose only routes matching *patterns*; exclude patterns are then ignored."""
        self._include = list(patterns)

    def set_exclude(self, patterns: Sequence[str]) -> None:
        self._exclude = list(patterns)

    def server_info(self) -> tuple[str, str, str]:
        """Return ``(name, version, description)``."""
        return self.name, self.version, self.description

    # ------------------------------------------------------------------
    # Tool registry
    # ------------------------------------------------------------------

    @property
    def tools(self) -> list[Tool]:
        return list(self._registry[0])

    @property
    def operations(self) -> dict[str, Operation]:
        return dict(self._registry[1])

    def refresh(self) -> list[Tool]:
        """Rebuild the tools and operations from the current route table."""
        routes = filter_routes(
            self._routes.list_routes(),
            self._include,
            self._exclude,
            mount_path=self._mount_path,
            include_tags=self.config.include_tags,
            exclude_tags=self.config.exclude_tags,
            document=self.document,
        )
        with self._lock.read():
            registered = dict(self._registered)

        tools, operations = build_tools(routes, registered, self.document)
        self._registry = (tools, operations)
        return list(tools)

    # ------------------------------------------------------------------
    # Mounting
    # ------------------------------------------------------------------

    def mount(self, app: Any, path: str = DEFAULT_MOUNT_PATH) -> None:
        """Register the handlers and add the MCP endpoint to a Starlette app.

        Raises:
            ConfigurationError: If *path* is empty or not absolute, or a tool
                name collides.
        """
        if not path:
            raise ConfigurationError("Mount path cannot be empty")
        if not path.startswith("/"):
            raise ConfigurationError(f"Mount path must start with '/': {path!r}")

        self._mount_path = path
        self._register_handlers()
        self.refresh()

        self.transport = HTTPTransport(self.dispatcher, path)
        app.router.routes.append(self.transport.route())
        logger.info("MCP server mounted at %s with %d tool(s)", path, len(self._registry[0]))

    def _register_handlers(self) -> None:
        self.dispatcher.register_handler(INITIALIZE, self._handle_initialize)
        self.dispatcher.register_handler("notifications/initialized", self._handle_initialized)
        self.dispatcher.register_handler("ping", self._handle_ping)
        self.dispatcher.register_handler("tools/list", self._handle_tools_list)
        self.dispatcher.register_handler("tools/call", self._handle_tools_call)

    # ------------------------------------------------------------------
    # Method handlers
    # ------------------------------------------------------------------

    async def _handle_initialize(self, params: Any) -> InitializeResult:
        return InitializeResult(
            protocol_version=self.config.protocol_version,
            server_info=ServerInfo(name=self.name, version=self.version or DEFAULT_SERVER_VERSION),
        )

    async def _handle_initialized(self, params: Any) -> None:
        return None

    async def _handle_ping(self, params: Any) -> dict[str, Any]:
        return {}

    async def _handle_tools_list(self, params: Any) -> ToolsListResult:
        return ToolsListResult(tools=self.refresh())

    async def _handle_tools_call(self, params: Any) -> ToolCallResult:
        try:
            call = ToolCallParams.model_validate(params)
        except ValidationError as exc:
            raise ProtocolError(ProtocolErrorKind.INVALID_PARAMS, _call_params_message(exc)) from exc

        logger.debug("Calling tool %s", call.name)
        payload = await self.engine.execute(call.name, call.arguments, self._registry[1])
        text = payload if isinstance(payload, str) else json.dumps(payload)
        return ToolCallResult(content=[TextContent(text=text)])


def _call_params_message(exc: ValidationError) -> str:
    loc = exc.errors()[0]["loc"]
    if not loc:
        return "invalid parameters"
    if loc[0] == "name":
        return "missing tool name"
    return "arguments must be an object"
