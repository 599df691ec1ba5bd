"""Core data model — routes, tools, operations, sessions.

JSON schemas themselves are plain ``dict[str, Any]`` values throughout the
package; these models only describe the things built around them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def is_body_method(method: str) -> bool:
    """Return True for methods that carry a request body."""
    return method.upper() in BODY_METHODS


class RouteDescriptor(BaseModel):
    """One ``{method, path}`` entry from the host framework's routing table.

    Variable segments use the ``:name`` placeholder syntax.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    path: str

    @field_validator("method")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()

    @property
    def key(self) -> str:
        return f"{self.method} {self.path}"


class RegisteredSchema(BaseModel):
    """Type descriptors registered by hand for one ``method + path``."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    query_schema: Any = None
    body_schema: Any = None


class Tool(BaseModel):
    """A tool definition as returned by ``tools/list``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
    )


class Operation(BaseModel):
    """Execution metadata backing a :class:`Tool`, keyed by the same name.

    Any argument that is not a path placeholder and not listed in one of the
    parameter sets is JSON body content. ``wrapped_body`` means the input
    schema nests the payload under a single ``body`` property.
    """

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    header_params: frozenset[str] = frozenset()
    query_params: frozenset[str] = frozenset()
    form_data_params: frozenset[str] = frozenset()
    wrapped_body: bool = False


class Session(BaseModel):
    """A client session created by a successful handshake. Never expires."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
