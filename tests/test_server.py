"""End-to-end tests for MCPServer mounted on a Starlette app."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Annotated, Any
from unittest.mock import patch

import httpx
import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from routemcp.config import ServerConfig, TelemetrySettings
from routemcp.errors import ConfigurationError
from routemcp.execution import ExecutionEngine
from routemcp.routing import StarletteRouteProvider, StaticRouteProvider
from routemcp.schema.docs import StaticDocumentation
from routemcp.server import MCPServer
from routemcp.transport import SESSION_HEADER


@dataclass
class ListQuery:
    page: Annotated[int, "required,minimum=1"] = 1


@dataclass
class UnboundedQuery:
    limit: Annotated[int, "minimum=nan,maximum=inf"] = 0


async def _ping(request: Request) -> JSONResponse:
    return JSONResponse({"message": "pong"})


async def _noop(request: Request) -> JSONResponse:
    return JSONResponse({})


def _backend(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/ping":
        return httpx.Response(200, json={"message": "pong"})
    if request.url.path == "/text":
        return httpx.Response(200, text="plain pong")
    if request.url.path.startswith("/users/"):
        return httpx.Response(200, json={"id": request.url.path.rsplit("/", 1)[-1]})
    return httpx.Response(404, json={"error": "not found"})


def _app() -> Starlette:
    return Starlette(routes=[
        Route("/ping", _ping),
        Route("/text", _noop),
        Route("/users/{id}", _noop, methods=["GET"]),
        Route("/users", _noop, methods=["POST"]),
    ])


def _server(app: Starlette, config: ServerConfig | None = None, **kwargs: Any) -> MCPServer:
    engine = ExecutionEngine("http://backend", transport=httpx.MockTransport(_backend))
    return MCPServer(StarletteRouteProvider(app), config, engine=engine, **kwargs)


def _rpc(client: TestClient, method: str, params: Any = None, request_id: int = 1) -> dict[str, Any]:
    message: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    resp = client.post("/mcp", json=message)
    assert resp.status_code == 200
    return resp.json()


@pytest.fixture
def mounted() -> tuple[MCPServer, TestClient]:
    app = _app()
    server = _server(app, ServerConfig(name="Test API"))
    server.mount(app)
    return server, TestClient(app)


class TestMount:
    def test_rejects_empty_path(self) -> None:
        app = _app()
        with pytest.raises(ConfigurationError, match="empty"):
            _server(app).mount(app, "")

    def test_rejects_relative_path(self) -> None:
        app = _app()
        with pytest.raises(ConfigurationError, match="start with"):
            _server(app).mount(app, "mcp")

    def test_mount_path_is_not_a_tool(self, mounted: tuple[MCPServer, TestClient]) -> None:
        server, _ = mounted
        names = {t.name for t in server.tools}
        assert names == {"GET_ping", "GET_text", "GET_users_id", "POST_users"}

    def test_custom_path(self) -> None:
        app = _app()
        server = _server(app)
        server.mount(app, "/rpc")
        resp = TestClient(app).post("/rpc", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})
        assert resp.json()["result"] == {}
        assert "POST_rpc" not in {t.name for t in server.tools}


class TestHandshake:
    def test_initialize(self, mounted: tuple[MCPServer, TestClient]) -> None:
        _, client = mounted
        resp = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})
        body = resp.json()
        assert body["result"]["protocolVersion"] == "2024-11-05"
        assert body["result"]["capabilities"] == {"tools": {}}
        assert body["result"]["serverInfo"] == {"name": "Test API", "version": "1.0.0"}
        assert resp.headers[SESSION_HEADER]

    def test_configured_protocol_version(self) -> None:
        app = _app()
        server = _server(app, ServerConfig(protocol_version="2025-03-26", version="3.2.1"))
        server.mount(app)
        body = _rpc(TestClient(app), "initialize")
        assert body["result"]["protocolVersion"] == "2025-03-26"
        assert body["result"]["serverInfo"]["version"] == "3.2.1"

    def test_initialized_notification(self, mounted: tuple[MCPServer, TestClient]) -> None:
        _, client = mounted
        resp = client.post("/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert resp.json() == {"jsonrpc": "2.0", "id": None, "result": None}

    def test_ping(self, mounted: tuple[MCPServer, TestClient]) -> None:
        _, client = mounted
        assert _rpc(client, "ping")["result"] == {}

    def test_unknown_method(self, mounted: tuple[MCPServer, TestClient]) -> None:
        _, client = mounted
        body = _rpc(client, "resources/list")
        assert body["error"]["code"] == -32601
        assert "resources/list" in body["error"]["message"]


class TestToolsList:
    def test_lists_all_tools(self, mounted: tuple[MCPServer, TestClient]) -> None:
        _, client = mounted
        tools = _rpc(client, "tools/list")["result"]["tools"]
        assert len(tools) == 4
        by_name = {t["name"]: t for t in tools}
        assert by_name["GET_users_id"]["inputSchema"]["required"] == ["id"]
        assert by_name["GET_ping"]["description"] == "Execute GET request to /ping"

    def test_reflects_late_routes(self, mounted: tuple[MCPServer, TestClient]) -> None:
        _, client = mounted
        client.app.router.routes.append(Route("/late", _noop))  # type: ignore[attr-defined]
        names = {t["name"] for t in _rpc(client, "tools/list")["result"]["tools"]}
        assert "GET_late" in names

    def test_include_and_exclude(self, mounted: tuple[MCPServer, TestClient]) -> None:
        server, client = mounted
        server.set_exclude(["/users*"])
        names = {t["name"] for t in _rpc(client, "tools/list")["result"]["tools"]}
        assert names == {"GET_ping", "GET_text"}

        server.set_include(["/users/:id"])
        names = {t["name"] for t in _rpc(client, "tools/list")["result"]["tools"]}
        assert names == {"GET_users_id"}

    def test_registered_schema(self, mounted: tuple[MCPServer, TestClient]) -> None:
        server, client = mounted
        server.register_schema("GET", "/ping", query_schema=ListQuery)
        tools = {t["name"]: t for t in _rpc(client, "tools/list")["result"]["tools"]}
        schema = tools["GET_ping"]["inputSchema"]
        assert schema["properties"]["page"] == {"type": "integer", "minimum": 1}
        assert schema["required"] == ["page"]
        assert server.operations["GET_ping"].query_params == frozenset({"page"})

    def test_non_finite_bounds_are_not_serialized(self, mounted: tuple[MCPServer, TestClient]) -> None:
        server, client = mounted
        server.register_schema("GET", "/ping", query_schema=UnboundedQuery)
        tools = {t["name"]: t for t in _rpc(client, "tools/list")["result"]["tools"]}
        assert tools["GET_ping"]["inputSchema"]["properties"]["limit"] == {"type": "integer"}


class TestToolsCall:
    def test_call_returns_text_content(self, mounted: tuple[MCPServer, TestClient]) -> None:
        _, client = mounted
        result = _rpc(client, "tools/call", {"name": "GET_ping", "arguments": {}})["result"]
        assert result["content"][0]["type"] == "text"
        assert json.loads(result["content"][0]["text"]) == {"message": "pong"}

    def test_string_payload_is_passed_through(self, mounted: tuple[MCPServer, TestClient]) -> None:
        _, client = mounted
        result = _rpc(client, "tools/call", {"name": "GET_text"})["result"]
        assert result["content"][0]["text"] == "plain pong"

    def test_path_parameter(self, mounted: tuple[MCPServer, TestClient]) -> None:
        _, client = mounted
        result = _rpc(client, "tools/call", {"name": "GET_users_id", "arguments": {"id": "42"}})["result"]
        assert json.loads(result["content"][0]["text"]) == {"id": "42"}

    def test_unknown_tool(self, mounted: tuple[MCPServer, TestClient]) -> None:
        _, client = mounted
        error = _rpc(client, "tools/call", {"name": "GET_nope"})["error"]
        assert error["code"] == -32603
        assert error["message"] == "Tool not found: GET_nope"
        assert error["data"] == {"kind": "tool_not_found"}

    @pytest.mark.parametrize(
        ("params", "message"),
        [
            (["GET_ping"], "invalid parameters"),
            ({"arguments": {}}, "missing tool name"),
            ({"name": 5}, "missing tool name"),
            ({"name": "GET_ping", "arguments": [1]}, "arguments must be an object"),
        ],
    )
    def test_invalid_params(
        self, mounted: tuple[MCPServer, TestClient], params: Any, message: str
    ) -> None:
        _, client = mounted
        error = _rpc(client, "tools/call", params)["error"]
        assert error["code"] == -32603
        assert error["message"] == message
        assert error["data"] == {"kind": "invalid_params"}

    def test_missing_params(self, mounted: tuple[MCPServer, TestClient]) -> None:
        _, client = mounted
        assert _rpc(client, "tools/call")["error"]["message"] == "invalid parameters"


class TestServerInfo:
    def test_populated_from_documentation(self, swagger_doc: dict[str, Any]) -> None:
        server = MCPServer(StaticRouteProvider([]), documentation=StaticDocumentation(swagger_doc))
        assert server.server_info() == ("Users API", "2.1.0", "Manage users")

    def test_config_wins(self, swagger_doc: dict[str, Any]) -> None:
        server = MCPServer(
            StaticRouteProvider([]),
            ServerConfig(name="Mine", description="Custom"),
            documentation=StaticDocumentation(swagger_doc),
        )
        assert server.server_info() == ("Mine", "2.1.0", "Custom")

    def test_docs_disabled(self, swagger_doc: dict[str, Any]) -> None:
        server = MCPServer(
            StaticRouteProvider([("GET", "/api/v1/users/:id")]),
            ServerConfig(enable_doc_schemas=False),
            documentation=StaticDocumentation(swagger_doc),
        )
        assert server.document is None
        assert server.server_info() == ("", "", "")
        assert server.refresh()[0].description == "Execute GET request to /api/v1/users/:id"

    def test_documented_tools(self, swagger_doc: dict[str, Any]) -> None:
        server = MCPServer(
            StaticRouteProvider([("GET", "/api/v1/users/:id"), ("GET", "/api/v1/health")]),
            ServerConfig(exclude_tags=["ops"]),
            documentation=StaticDocumentation(swagger_doc),
        )
        tools = server.refresh()
        assert [t.name for t in tools] == ["GET_api_v1_users_id"]
        assert tools[0].description == "Get a user"

    def test_default_engine_uses_config(self) -> None:
        server = MCPServer(StaticRouteProvider([]), ServerConfig(base_url="http://api.local/", timeout=5))
        assert server.engine.base_url == "http://api.local"
        assert server.engine.timeout == 5


class TestTelemetry:
    def test_enabled_settings_configure_tracing(self) -> None:
        config = ServerConfig(
            name="Users API",
            telemetry=TelemetrySettings(enabled=True, otlp_endpoint="http://collector:4317"),
        )
        with patch("routemcp.server.configure_telemetry") as configure:
            MCPServer(StaticRouteProvider([]), config)
        configure.assert_called_once_with("Users API", console=False, otlp_endpoint="http://collector:4317")

    def test_documented_name_is_the_service_name(self, swagger_doc: dict[str, Any]) -> None:
        config = ServerConfig(telemetry=TelemetrySettings(enabled=True, console=True))
        with patch("routemcp.server.configure_telemetry") as configure:
            MCPServer(StaticRouteProvider([]), config, documentation=StaticDocumentation(swagger_doc))
        configure.assert_called_once_with("Users API", console=True, otlp_endpoint=None)

    @pytest.mark.parametrize("settings", [None, TelemetrySettings(enabled=False, console=True)])
    def test_disabled_leaves_tracing_alone(self, settings: TelemetrySettings | None) -> None:
        with patch("routemcp.server.configure_telemetry") as configure:
            MCPServer(StaticRouteProvider([]), ServerConfig(telemetry=settings))
        configure.assert_not_called()

    def test_missing_extra_is_a_configuration_error(self) -> None:
        config = ServerConfig(telemetry=TelemetrySettings(enabled=True))
        with patch.dict("sys.modules", {"opentelemetry.sdk.resources": None}):
            with pytest.raises(ConfigurationError, match="routemcp\\[otel\\]"):
                MCPServer(StaticRouteProvider([]), config)
