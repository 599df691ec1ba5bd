"""Three-tier schema resolution for one route.

Priority: the API documentation wins when it documents the route; then a
manually registered schema; then the introspection fallback (an empty
object, plus a generic ``body`` for body-carrying methods).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from routemcp.models import is_body_method
from routemcp.schema.introspect import empty_object_schema, schema_for

if TYPE_CHECKING:
    from routemcp.models import RegisteredSchema, RouteDescriptor
    from routemcp.schema.docs import ApiDocument

logger = logging.getLogger(__name__)

GENERIC_BODY: dict[str, Any] = {"type": "object", "description": "Request body"}


class SchemaSource(StrEnum):
    DOCS = "docs"
    REGISTERED = "registered"
    INTROSPECTION = "introspection"


@dataclass
class ResolvedSchema:
    """An object schema plus what the execution side needs to know about it."""

    schema: dict[str, Any]
    source: SchemaSource
    query_params: list[str] = field(default_factory=lambda: list[str]())
    wrapped_body: bool = False

    @property
    def properties(self) -> dict[str, Any]:
        return self.schema.get("properties", {})

    @property
    def required(self) -> list[str]:
        return self.schema.get("required", [])


def resolve(
    route: RouteDescriptor,
    document: ApiDocument | None = None,
    registered: RegisteredSchema | None = None,
) -> ResolvedSchema:
    """Resolve the input schema for *route* from the best available source."""
    if document is not None:
        try:
            schema = document.operation_schema(route.method, route.path)
        except LookupError:
            logger.debug("No documentation for %s, falling back", route.key)
        else:
            return ResolvedSchema(
                schema=schema,
                source=SchemaSource.DOCS,
                wrapped_body=document.has_body_parameter(route.method, route.path),
            )

    if registered is not None:
        return _from_registered(route, registered)

    schema = empty_object_schema()
    if is_body_method(route.method):
        schema["properties"]["body"] = dict(GENERIC_BODY)
    return ResolvedSchema(
        schema=schema,
        source=SchemaSource.INTROSPECTION,
        wrapped_body=is_body_method(route.method),
    )


def _from_registered(route: RouteDescriptor, registered: RegisteredSchema) -> ResolvedSchema:
    properties: dict[str, Any] = {}
    required: list[str] = []
    query_params: list[str] = []
    wrapped_body = False

    if registered.query_schema is not None:
        query = schema_for(registered.query_schema)
        query_props: dict[str, Any] = query.get("properties", {})
        properties.update(query_props)
        required.extend(query.get("required", []))
        query_params.extend(query_props)

    if is_body_method(route.method):
        if registered.body_schema is not None:
            body = schema_for(registered.body_schema)
            properties.update(body.get("properties", {}))
            required.extend(body.get("required", []))
        else:
            properties["body"] = dict(GENERIC_BODY)
            wrapped_body = True

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = list(dict.fromkeys(required))
    return ResolvedSchema(
        schema=schema,
        source=SchemaSource.REGISTERED,
        query_params=query_params,
        wrapped_body=wrapped_body,
    )
