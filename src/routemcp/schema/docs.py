"""API documentation tier — Swagger 2.0 / OpenAPI 3 documents as a schema source.

A parsed document is held as an :class:`ApiDocument`. OpenAPI 3 input is
normalized into the Swagger 2.0 shape on load, so the rest of the package
only ever sees ``parameters`` with an ``in`` location, ``definitions``, and
``#/definitions/...`` references.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from routemcp.errors import ConfigurationError

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch")
SIMPLE_LOCATIONS = ("path", "query", "header", "formData")

_PLACEHOLDER = re.compile(r":(\w+)")
_DEFINITIONS_PREFIX = "#/definitions/"
_PARAMETERS_PREFIX = "#/parameters/"
_COMPONENT_PARAMETERS_PREFIX = "#/components/parameters/"
_COMPONENTS_PREFIX = "#/components/schemas/"
_FORM_MEDIA_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


# ---------------------------------------------------------------------------
# Document model
# ---------------------------------------------------------------------------


def _first_type(value: Any) -> Any:
    """Reduce an OpenAPI 3.1 type list such as ``["string", "null"]`` to one name."""
    if isinstance(value, list):
        return next((item for item in value if item != "null"), "")
    return value


class ApiSchema(BaseModel):
    """A schema node; may be a ``$ref`` into ``definitions``."""

    model_config = ConfigDict(populate_by_name=True)

    ref: str = Field(default="", alias="$ref")
    type: str = ""
    description: str = ""
    format: str = ""
    minimum: float | None = None
    maximum: float | None = None
    properties: dict[str, ApiSchema] | None = None
    additional_properties: ApiSchema | bool | None = Field(
        default=None, alias="additionalProperties"
    )
    items: ApiSchema | None = None
    required: list[str] = Field(default_factory=lambda: list[str]())

    @field_validator("type", mode="before")
    @classmethod
    def _reduce_type(cls, value: Any) -> Any:
        return _first_type(value)


class ApiParameter(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    in_: str = Field(alias="in")
    type: str = ""
    description: str = ""
    required: bool = False
    schema_: ApiSchema | None = Field(default=None, alias="schema")

    @field_validator("type", mode="before")
    @classmethod
    def _reduce_type(cls, value: Any) -> Any:
        return _first_type(value)


class ApiOperation(BaseModel):
    summary: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=lambda: list[str]())
    parameters: list[ApiParameter] = Field(default_factory=lambda: list[ApiParameter]())
    responses: dict[str, Any] = Field(default_factory=lambda: dict[str, Any]())


class ApiInfo(BaseModel):
    title: str = ""
    description: str = ""
    version: str = ""


class ApiDocument(BaseModel):
    """A parsed API document with lookup helpers keyed by route method + path."""

    model_config = ConfigDict(populate_by_name=True)

    swagger: str = ""
    base_path: str = Field(default="", alias="basePath")
    info: ApiInfo | None = None
    paths: dict[str, dict[str, ApiOperation]] = Field(
        default_factory=lambda: dict[str, dict[str, ApiOperation]]()
    )
    definitions: dict[str, ApiSchema] = Field(default_factory=lambda: dict[str, ApiSchema]())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ApiDocument:
        """Validate a decoded Swagger 2.0 or OpenAPI 3.x document.

        Raises:
            ConfigurationError: If the document does not validate.
        """
        if "openapi" in data:
            data = _normalize_openapi3(data)
        else:
            paths = _normalize_paths(data.get("paths") or {}, data.get("parameters") or {}, _PARAMETERS_PREFIX)
            data = {**data, "paths": paths}
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid API documentation: {exc}") from exc

    # -- lookups ------------------------------------------------------------

    def find_operation(self, method: str, path: str) -> ApiOperation | None:
        """Return the documented operation for a route, or None."""
        doc_path = route_to_doc_path(path)
        candidates = [doc_path]
        base = self.base_path.rstrip("/")
        if base and doc_path.startswith(base + "/"):
            candidates.append(doc_path[len(base):])
        for candidate in candidates:
            operation = self.paths.get(candidate, {}).get(method.lower())
            if operation is not None:
                return operation
        return None

    def describe(self, method: str, path: str) -> str:
        """Return the operation summary, else its description, else ``""``."""
        operation = self.find_operation(method, path)
        if operation is None:
            return ""
        return operation.summary or operation.description

    def parameter_names(self, method: str, path: str, location: str) -> list[str]:
        """Names of documented parameters declared ``in`` *location*."""
        operation = self.find_operation(method, path)
        if operation is None:
            return []
        return [p.name for p in operation.parameters if p.in_ == location]

    def operation_schema(self, method: str, path: str) -> dict[str, Any]:
        """Build the input schema for one operation.

        Simple parameters become sibling properties of the root object. A body
        parameter is nested under ``body``, except on GET where it is skipped:
        those are almost always response models tagged as request bodies.

        Raises:
            LookupError: If the path or method is not documented.
        """
        operation = self.find_operation(method, path)
        if operation is None:
            msg = f"{method.upper()} {route_to_doc_path(path)} not found in API documentation"
            raise LookupError(msg)

        properties: dict[str, Any] = {}
        required: list[str] = []

        for param in operation.parameters:
            if param.in_ in SIMPLE_LOCATIONS:
                prop: dict[str, Any] = {"type": param.type or "string"}
                if param.description:
                    prop["description"] = param.description
                elif param.in_ == "header":
                    prop["description"] = f"Header parameter: {param.name}"
                elif param.in_ == "formData":
                    prop["description"] = f"Form data parameter: {param.name}"
                properties[param.name] = prop
                if param.required:
                    required.append(param.name)
            elif param.in_ == "body" and param.schema_ is not None:
                if method.upper() == "GET":
                    continue
                properties["body"] = self.resolve_schema(param.schema_)
                if param.required:
                    required.append("body")

        schema: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return schema

    def has_body_parameter(self, method: str, path: str) -> bool:
        operation = self.find_operation(method, path)
        if operation is None or method.upper() == "GET":
            return False
        return any(p.in_ == "body" and p.schema_ is not None for p in operation.parameters)

    def resolve_schema(
        self, schema: ApiSchema | None, _seen: frozenset[str] = frozenset()
    ) -> dict[str, Any]:
        """Convert a schema node to a plain JSON schema, following ``$ref``.

        Unknown or cyclic references degrade to ``{"type": "object"}``.
        """
        if schema is None:
            return {"type": "object"}

        if schema.ref:
            name = schema.ref.removeprefix(_DEFINITIONS_PREFIX)
            target = self.definitions.get(name) if schema.ref.startswith(_DEFINITIONS_PREFIX) else None
            if target is None:
                logger.debug("Unresolvable reference %s", schema.ref)
                return {"type": "object"}
            if name in _seen:
                return {"type": "object"}
            return self.resolve_schema(target, _seen | {name})

        result: dict[str, Any] = {}
        if schema.type:
            result["type"] = schema.type
        if schema.description:
            result["description"] = schema.description
        if schema.format:
            result["format"] = schema.format
        if schema.minimum is not None:
            result["minimum"] = schema.minimum
        if schema.maximum is not None:
            result["maximum"] = schema.maximum
        if schema.properties is not None:
            result["properties"] = {
                key: self.resolve_schema(prop, _seen) for key, prop in schema.properties.items()
            }
        elif schema.type == "object":
            result["properties"] = {}
        if isinstance(schema.additional_properties, ApiSchema):
            result["additionalProperties"] = self.resolve_schema(schema.additional_properties, _seen)
        elif isinstance(schema.additional_properties, bool):
            result["additionalProperties"] = schema.additional_properties
        if schema.items is not None:
            result["items"] = self.resolve_schema(schema.items, _seen)
        elif schema.type == "array":
            result["items"] = {}
        if schema.required:
            result["required"] = list(schema.required)
        return result


def route_to_doc_path(path: str) -> str:
    """Convert ``/users/:id`` to the documentation form ``/users/{id}``."""
    return _PLACEHOLDER.sub(r"{\1}", path)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def _normalize_paths(
    paths: dict[str, Any], shared_parameters: dict[str, Any], ref_prefix: str
) -> dict[str, dict[str, Any]]:
    """Keep only HTTP-method keys and fold path-level parameters into each operation.

    Parameter references under *ref_prefix* are replaced by their targets in
    *shared_parameters*; unresolvable references are dropped.
    """
    normalized: dict[str, dict[str, Any]] = {}
    for path, item in paths.items():
        if not isinstance(item, dict):
            continue
        shared = _resolve_parameters(item.get("parameters") or [], shared_parameters, ref_prefix)
        operations: dict[str, Any] = {}
        for method in HTTP_METHODS:
            op = item.get(method)
            if not isinstance(op, dict):
                continue
            own = _resolve_parameters(op.get("parameters") or [], shared_parameters, ref_prefix)
            declared = {(p.get("name"), p.get("in")) for p in own}
            inherited = [p for p in shared if (p.get("name"), p.get("in")) not in declared]
            operations[method] = {**op, "parameters": [*inherited, *own]}
        normalized[path] = operations
    return normalized


def _resolve_parameters(
    params: list[Any], shared_parameters: dict[str, Any], ref_prefix: str
) -> list[dict[str, Any]]:
    resolved: list[dict[str, Any]] = []
    for param in params:
        if not isinstance(param, dict):
            continue
        ref = param.get("$ref")
        if isinstance(ref, str):
            target = shared_parameters.get(ref.removeprefix(ref_prefix)) if ref.startswith(ref_prefix) else None
            if not isinstance(target, dict):
                logger.debug("Skipping unresolvable parameter reference %s", ref)
                continue
            param = target
        resolved.append(param)
    return resolved


def _rewrite_refs(node: Any) -> Any:
    if isinstance(node, dict):
        rewritten: dict[str, Any] = {}
        for key, value in node.items():
            if key == "$ref" and isinstance(value, str) and value.startswith(_COMPONENTS_PREFIX):
                rewritten[key] = _DEFINITIONS_PREFIX + value.removeprefix(_COMPONENTS_PREFIX)
            else:
                rewritten[key] = _rewrite_refs(value)
        return rewritten
    if isinstance(node, list):
        return [_rewrite_refs(item) for item in node]
    return node


def _normalize_openapi3(data: dict[str, Any]) -> dict[str, Any]:
    """Reshape an OpenAPI 3.x document into the Swagger 2.0 layout."""
    data = _rewrite_refs(data)
    components: dict[str, Any] = data.get("components") or {}
    definitions: dict[str, Any] = components.get("schemas") or {}
    paths = _normalize_paths(
        data.get("paths") or {}, components.get("parameters") or {}, _COMPONENT_PARAMETERS_PREFIX
    )

    for operations in paths.values():
        for method, op in operations.items():
            params: list[dict[str, Any]] = []
            for param in op.get("parameters", []):
                param_schema = param.get("schema") or {}
                params.append({
                    "name": param.get("name", ""),
                    "in": param.get("in", "query"),
                    "type": param_schema.get("type") or "string",
                    "description": param.get("description", ""),
                    "required": bool(param.get("required", False)),
                })
            params.extend(_request_body_parameters(op.get("requestBody"), definitions))
            operations[method] = {**op, "parameters": params}

    return {
        "swagger": str(data.get("openapi", "")),
        "info": data.get("info"),
        "paths": paths,
        "definitions": definitions,
    }


def _request_body_parameters(
    body: Any, definitions: dict[str, Any]
) -> list[dict[str, Any]]:
    if not isinstance(body, dict):
        return []
    content: dict[str, Any] = body.get("content") or {}
    required = bool(body.get("required", False))

    for media_type, media in content.items():
        if media_type == "application/json" or media_type.endswith("+json"):
            return [{
                "name": "body",
                "in": "body",
                "required": required,
                "description": body.get("description", ""),
                "schema": (media or {}).get("schema") or {"type": "object"},
            }]

    for media_type in _FORM_MEDIA_TYPES:
        media = content.get(media_type)
        if media is None:
            continue
        form_schema: dict[str, Any] = (media or {}).get("schema") or {}
        ref = form_schema.get("$ref", "")
        if ref.startswith(_DEFINITIONS_PREFIX):
            form_schema = definitions.get(ref.removeprefix(_DEFINITIONS_PREFIX)) or {}
        form_required = set(form_schema.get("required") or [])
        return [
            {
                "name": name,
                "in": "formData",
                "type": (prop or {}).get("type") or "string",
                "description": (prop or {}).get("description", ""),
                "required": name in form_required,
            }
            for name, prop in (form_schema.get("properties") or {}).items()
        ]
    return []


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


@runtime_checkable
class DocumentationProvider(Protocol):
    """Supplies the parsed API document. Raises ConfigurationError when unavailable."""

    def get_spec(self) -> ApiDocument: ...


class StaticDocumentation:
    """Serves an already-decoded document."""

    def __init__(self, document: ApiDocument | dict[str, Any]) -> None:
        self._document = document if isinstance(document, ApiDocument) else ApiDocument.from_dict(document)

    def get_spec(self) -> ApiDocument:
        return self._document


class FileDocumentation:
    """Loads a JSON or YAML document from disk on first use and caches it."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._document: ApiDocument | None = None

    def get_spec(self) -> ApiDocument:
        if self._document is None:
            self._document = load_document(self._path)
        return self._document


def load_document(path: Path) -> ApiDocument:
    """Read and parse an API document file.

    Raises:
        ConfigurationError: On read, parse, or validation failures.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {path}: {exc}") from exc

    try:
        if path.suffix == ".json":
            data: Any = json.loads(raw)
        else:
            data = yaml.safe_load(raw)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Cannot parse {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")
    return ApiDocument.from_dict(data)
