"""Tests for the core data model."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from routemcp.models import Operation, RouteDescriptor, Session, Tool, is_body_method


class TestRouteDescriptor:
    def test_method_is_upper_cased(self) -> None:
        route = RouteDescriptor(method="get", path="/users/:id")
        assert route.method == "GET"
        assert route.key == "GET /users/:id"

    def test_frozen(self) -> None:
        route = RouteDescriptor(method="GET", path="/ping")
        with pytest.raises(ValidationError):
            route.path = "/pong"  # type: ignore[misc]

    def test_hashable(self) -> None:
        a = RouteDescriptor(method="GET", path="/ping")
        b = RouteDescriptor(method="get", path="/ping")
        assert len({a, b}) == 1


class TestTool:
    def test_serializes_input_schema_alias(self) -> None:
        tool = Tool(name="GET_ping", description="Ping")
        data = tool.model_dump(by_alias=True)
        assert data["inputSchema"] == {"type": "object", "properties": {}}

    def test_accepts_alias_on_input(self) -> None:
        tool = Tool.model_validate({"name": "x", "inputSchema": {"type": "object"}})
        assert tool.input_schema == {"type": "object"}


class TestOperation:
    def test_defaults(self) -> None:
        op = Operation(method="GET", path="/users")
        assert op.header_params == frozenset()
        assert op.query_params == frozenset()
        assert op.form_data_params == frozenset()
        assert op.wrapped_body is False


class TestSession:
    def test_unique_ids(self) -> None:
        assert Session().id != Session().id

    def test_created_at_is_aware(self) -> None:
        assert Session().created_at.tzinfo is not None


@pytest.mark.parametrize(
    ("method", "expected"),
    [("POST", True), ("put", True), ("PATCH", True), ("GET", False), ("DELETE", False)],
)
def test_is_body_method(method: str, expected: bool) -> None:
    assert is_body_method(method) is expected
