"""Server configuration — identity, target base URL, endpoint filters."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from routemcp.errors import ConfigurationError

if TYPE_CHECKING:
    from pathlib import Path

DEFAULT_PROTOCOL_VERSION = "2024-11-05"
DEFAULT_SERVER_VERSION = "1.0.0"
DEFAULT_BASE_URL = "http://localhost:8080"


class TelemetrySettings(BaseModel):
    """Optional tracing setup. Needs the ``otel`` extra when enabled."""

    enabled: bool = False
    console: bool = False
    otlp_endpoint: str | None = None


class ServerConfig(BaseModel):
    """Configuration for an :class:`~routemcp.server.MCPServer`.

    ``name``, ``version`` and ``description`` are filled in from the API
    documentation's ``info`` block when left empty and
    ``enable_doc_schemas`` is on.

    Filter patterns accept exact paths (``/users/:id``) and prefix wildcards
    (``/admin/*``). Include patterns take precedence; when any are set the
    exclude patterns are ignored.
    """

    name: str = ""
    version: str = ""
    description: str = ""
    base_url: str | None = None
    include_operations: list[str] = Field(default_factory=lambda: list[str]())
    exclude_operations: list[str] = Field(default_factory=lambda: list[str]())
    include_tags: list[str] = Field(default_factory=lambda: list[str]())
    exclude_tags: list[str] = Field(default_factory=lambda: list[str]())
    enable_doc_schemas: bool = True
    protocol_version: str = DEFAULT_PROTOCOL_VERSION
    timeout: float = 30.0
    telemetry: TelemetrySettings | None = None


def load_config(path: Path) -> ServerConfig:
    """Read a YAML config file, interpolate env vars, and validate.

    Raises:
        ConfigurationError: On read errors, YAML errors, or validation failures.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {path}: {exc}") from exc

    try:
        data: Any = yaml.safe_load(os.path.expandvars(raw))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"YAML parse error: {exc}") from exc

    if data is None:
        return ServerConfig()
    if not isinstance(data, dict):
        raise ConfigurationError("Config YAML must be a mapping")

    try:
        return ServerConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
