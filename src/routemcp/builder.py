"""Tool/Operation builder — turns filtered routes into MCP tools."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from routemcp.errors import ConfigurationError
from routemcp.models import Operation, RegisteredSchema, RouteDescriptor, Tool
from routemcp.schema.resolver import ResolvedSchema, SchemaSource, resolve

if TYPE_CHECKING:
    from routemcp.schema.docs import ApiDocument

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r":(\w+)")


def schema_key(method: str, path: str) -> str:
    """Registry key for a manually registered schema."""
    return f"{method.upper()} {path}"


def operation_id(method: str, path: str) -> str:
    """Derive a tool name, e.g. ``GET /users/:id`` → ``GET_users_id``."""
    normalized = path.replace(":", "").replace("/", "_").strip("_")
    return f"{method.upper()}_{normalized or 'root'}"


def path_parameters(path: str) -> list[str]:
    """Placeholder names in *path*, in order of appearance."""
    return _PLACEHOLDER.findall(path)


def build_tools(
    routes: Iterable[RouteDescriptor],
    registered: Mapping[str, RegisteredSchema] | None = None,
    document: ApiDocument | None = None,
) -> tuple[list[Tool], dict[str, Operation]]:
    """Build the tool list and operation registry for *routes*.

    Raises:
        ConfigurationError: If two routes normalize to the same tool name.
    """
    registered = registered or {}
    tools: list[Tool] = []
    operations: dict[str, Operation] = {}
    owners: dict[str, RouteDescriptor] = {}

    for route in routes:
        if not route.method or not route.path:
            continue

        name = operation_id(route.method, route.path)
        if name in owners:
            other = owners[name]
            msg = f"Tool name {name!r} is produced by both {other.key} and {route.key}"
            raise ConfigurationError(msg)
        owners[name] = route

        resolved = resolve(route, document, registered.get(schema_key(route.method, route.path)))
        tools.append(Tool(
            name=name,
            description=_description(route, document),
            input_schema=_input_schema(route, resolved),
        ))
        operations[name] = _operation(route, resolved, document)

    logger.debug("Built %d tool(s)", len(tools))
    return tools, operations


def _description(route: RouteDescriptor, document: ApiDocument | None) -> str:
    if document is not None:
        described = document.describe(route.method, route.path)
        if described:
            return described
    return f"Execute {route.method} request to {route.path}"


def _input_schema(route: RouteDescriptor, resolved: ResolvedSchema) -> dict[str, Any]:
    properties: dict[str, Any] = {}
    required: list[str] = []

    for param in path_parameters(route.path):
        properties[param] = {"type": "string", "description": f"Path parameter: {param}"}
        required.append(param)

    properties.update(resolved.properties)
    required.extend(resolved.required)

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = list(dict.fromkeys(required))
    return schema


def _operation(
    route: RouteDescriptor, resolved: ResolvedSchema, document: ApiDocument | None
) -> Operation:
    headers: list[str] = []
    query: list[str] = list(resolved.query_params)
    form: list[str] = []
    if document is not None and resolved.source is SchemaSource.DOCS:
        headers = document.parameter_names(route.method, route.path, "header")
        query = document.parameter_names(route.method, route.path, "query")
        form = document.parameter_names(route.method, route.path, "formData")

    return Operation(
        method=route.method,
        path=route.path,
        header_params=frozenset(headers),
        query_params=frozenset(query),
        form_data_params=frozenset(form),
        wrapped_body=resolved.wrapped_body,
    )
