"""Schema resolution — documentation, registered types, introspection."""

from routemcp.schema.docs import (
    ApiDocument,
    ApiOperation,
    ApiParameter,
    ApiSchema,
    DocumentationProvider,
    FileDocumentation,
    StaticDocumentation,
    load_document,
)
from routemcp.schema.introspect import SchemaDescribable, schema_for
from routemcp.schema.resolver import ResolvedSchema, SchemaSource, resolve

__all__ = [
    "ApiDocument",
    "ApiOperation",
    "ApiParameter",
    "ApiSchema",
    "DocumentationProvider",
    "FileDocumentation",
    "ResolvedSchema",
    "SchemaDescribable",
    "SchemaSource",
    "StaticDocumentation",
    "load_document",
    "resolve",
    "schema_for",
]
