"""routemcp — expose a web application's HTTP routes as MCP tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from routemcp.config import ServerConfig as ServerConfig
    from routemcp.execution import ExecutionEngine as ExecutionEngine
    from routemcp.routing import StarletteRouteProvider as StarletteRouteProvider
    from routemcp.routing import StaticRouteProvider as StaticRouteProvider
    from routemcp.schema.docs import FileDocumentation as FileDocumentation
    from routemcp.schema.docs import StaticDocumentation as StaticDocumentation
    from routemcp.server import MCPServer as MCPServer

_EXPORTS = {
    "MCPServer": "routemcp.server",
    "ServerConfig": "routemcp.config",
    "ExecutionEngine": "routemcp.execution",
    "StarletteRouteProvider": "routemcp.routing",
    "StaticRouteProvider": "routemcp.routing",
    "FileDocumentation": "routemcp.schema.docs",
    "StaticDocumentation": "routemcp.schema.docs",
}


def __getattr__(name: str) -> object:
    module_path = _EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'routemcp' has no attribute {name!r}")
