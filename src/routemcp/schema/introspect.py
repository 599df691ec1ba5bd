"""Registered-type tier — JSON schemas from Python type descriptors.

A descriptor may describe itself (:class:`SchemaDescribable`), or be a
dataclass or pydantic model (class or instance) whose fields are
introspected. Field annotations work like struct tags::

    @dataclass
    class UserQuery:
        page: Annotated[int, "required,minimum=1"] = 1
        limit: int = field(default=10, metadata={"form": "limit", "jsonschema": "maximum=100"})
        secret: str = field(default="", metadata={"json": "-"})

Nothing in this module raises: anything that cannot be described becomes
an empty object schema.
"""

from __future__ import annotations

import dataclasses
import enum
import inspect
import logging
import math
import re
import types
import typing
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_REQUIRED_TOKEN = re.compile(r"\brequired\b")
_SEQUENCE_ORIGINS = (list, tuple, set, frozenset)


@runtime_checkable
class SchemaDescribable(Protocol):
    """A type that reports its own JSON schema."""

    def describe_schema(self) -> dict[str, Any]: ...


def empty_object_schema() -> dict[str, Any]:
    return {"type": "object", "properties": {}}


def schema_for(descriptor: Any) -> dict[str, Any]:
    """Return an object schema for a registered type descriptor."""
    if descriptor is None:
        return empty_object_schema()

    described = _self_description(descriptor)
    if described is not None:
        return described

    cls = descriptor if isinstance(descriptor, type) else type(descriptor)
    if _is_struct(cls):
        return _object_schema(cls, frozenset())

    logger.warning("Cannot generate schema for non-struct type: %s", cls.__name__)
    return empty_object_schema()


def _self_description(descriptor: Any) -> dict[str, Any] | None:
    if not isinstance(descriptor, SchemaDescribable):
        return None
    if isinstance(descriptor, type):
        # A plain method needs an instance; only class/static methods are callable here.
        raw = inspect.getattr_static(descriptor, "describe_schema", None)
        if not isinstance(raw, (classmethod, staticmethod)):
            return None
    try:
        result = descriptor.describe_schema()
    except Exception:
        logger.warning("describe_schema() failed for %r", descriptor, exc_info=True)
        return None
    if not isinstance(result, dict):
        return None
    schema = dict(result)
    schema.setdefault("type", "object")
    if schema["type"] == "object":
        schema.setdefault("properties", {})
    return schema


def _is_struct(cls: type) -> bool:
    return dataclasses.is_dataclass(cls) or issubclass(cls, BaseModel)


# ---------------------------------------------------------------------------
# Field enumeration
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class _Field:
    name: str
    annotation: Any
    tags: list[str]
    required: bool = False
    extras: dict[str, Any] = dataclasses.field(default_factory=lambda: dict[str, Any]())


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError):
        # Unresolvable forward references; fall back to raw annotations.
        return dict(getattr(cls, "__annotations__", {}))


def _annotated_tags(annotation: Any) -> list[str]:
    if typing.get_origin(annotation) is typing.Annotated:
        return [m for m in typing.get_args(annotation)[1:] if isinstance(m, str)]
    return []


def _first_segment(tag: Any) -> str:
    return str(tag).split(",")[0].strip() if tag else ""


def _dataclass_fields(cls: type) -> list[_Field]:
    hints = _type_hints(cls)
    result: list[_Field] = []
    for f in dataclasses.fields(cls):  # type: ignore[arg-type]
        if f.name.startswith("_"):
            continue
        json_name = _first_segment(f.metadata.get("json"))
        if json_name == "-":
            continue
        annotation = hints.get(f.name, f.type)
        tags = [v for v in f.metadata.values() if isinstance(v, str)]
        tags.extend(_annotated_tags(annotation))
        name = json_name or _first_segment(f.metadata.get("form")) or f.name
        result.append(_Field(name=name, annotation=annotation, tags=tags))
    return result


def _model_fields(cls: type[BaseModel]) -> list[_Field]:
    result: list[_Field] = []
    for name, info in cls.model_fields.items():
        if info.exclude is True or name.startswith("_"):
            continue
        # pydantic strips Annotated and keeps the extras in metadata.
        annotation = info.annotation
        tags = [m for m in info.metadata if isinstance(m, str)]
        extra = info.json_schema_extra
        if isinstance(extra, dict) and isinstance(extra.get("jsonschema"), str):
            tags.append(str(extra["jsonschema"]))

        extras: dict[str, Any] = {}
        if info.description:
            extras["description"] = info.description
        for meta in info.metadata:
            if getattr(meta, "ge", None) is not None:
                extras["minimum"] = meta.ge
            if getattr(meta, "le", None) is not None:
                extras["maximum"] = meta.le

        result.append(_Field(
            name=info.serialization_alias or info.alias or name,
            annotation=annotation,
            tags=tags,
            required=info.is_required(),
            extras=extras,
        ))
    return result


# ---------------------------------------------------------------------------
# Schema construction
# ---------------------------------------------------------------------------


def _object_schema(cls: type, seen: frozenset[type]) -> dict[str, Any]:
    if cls in seen:
        return {"type": "object"}
    seen = seen | {cls}

    fields = _model_fields(cls) if issubclass(cls, BaseModel) else _dataclass_fields(cls)
    properties: dict[str, Any] = {}
    required: list[str] = []

    for f in fields:
        prop = _type_schema(f.annotation, seen)
        prop.update(f.extras)
        for tag in f.tags:
            apply_schema_tag(prop, tag)
        if f.required or any(_REQUIRED_TOKEN.search(tag) for tag in f.tags):
            required.append(f.name)
        properties[f.name] = prop

    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def _type_schema(annotation: Any, seen: frozenset[type]) -> dict[str, Any]:
    origin = typing.get_origin(annotation)

    if origin is typing.Annotated:
        return _type_schema(typing.get_args(annotation)[0], seen)

    if origin is typing.Union or origin is types.UnionType:
        members = [a for a in typing.get_args(annotation) if a is not type(None)]
        return _type_schema(members[0], seen) if members else {"type": "string"}

    if origin is not None:
        args = typing.get_args(annotation)
        if origin in _SEQUENCE_ORIGINS or (
            isinstance(origin, type) and issubclass(origin, Iterable) and not issubclass(origin, (str, Mapping))
        ):
            return {"type": "array", "items": _type_schema(args[0], seen) if args else {"type": "string"}}
        if isinstance(origin, type) and issubclass(origin, Mapping):
            return _mapping_schema(args, seen)
        return {"type": "string"}

    if not isinstance(annotation, type):
        return {"type": "string"}
    if issubclass(annotation, bool):
        return {"type": "boolean"}
    if issubclass(annotation, int):
        return {"type": "integer"}
    if issubclass(annotation, (float, Decimal)):
        return {"type": "number"}
    if issubclass(annotation, (str, bytes, enum.Enum)):
        return {"type": "string"}
    if issubclass(annotation, Mapping):
        return _mapping_schema((), seen)
    if issubclass(annotation, _SEQUENCE_ORIGINS):
        return {"type": "array", "items": {"type": "string"}}
    if _is_struct(annotation):
        return _object_schema(annotation, seen)
    return {"type": "string"}


def _mapping_schema(args: tuple[Any, ...], seen: frozenset[type]) -> dict[str, Any]:
    value = _type_schema(args[1], seen) if len(args) == 2 else {"type": "string"}
    return {"type": "object", "properties": {}, "additionalProperties": value}


def apply_schema_tag(prop: dict[str, Any], tag: str) -> None:
    """Apply ``description=``, ``minimum=`` and ``maximum=`` entries from *tag*.

    Bounds that do not parse as finite numbers are dropped.
    """
    for part in tag.split(","):
        part = part.strip()
        key, sep, value = part.partition("=")
        if not sep:
            continue
        if key == "description":
            prop["description"] = value
        elif key in ("minimum", "maximum"):
            try:
                number = float(value)
            except ValueError:
                continue
            if not math.isfinite(number):
                continue
            prop[key] = int(number) if number.is_integer() else number
