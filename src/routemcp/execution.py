"""ExecutionEngine — turns a tool call back into an HTTP request.

Arguments arrive as one flat mapping. Each one is routed to a path
placeholder, a header, the query string, the form body, or the JSON body,
according to the tool's :class:`~routemcp.models.Operation`.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from routemcp.config import DEFAULT_BASE_URL
from routemcp.errors import ExecutionError, ExecutionErrorKind, ToolNotFoundError
from routemcp.models import Operation, is_body_method
from routemcp.telemetry import (
    ATTR_HTTP_METHOD,
    ATTR_HTTP_STATUS,
    ATTR_HTTP_URL,
    ATTR_TOOL_NAME,
    get_tracer,
)

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

_PLACEHOLDER = re.compile(r":(\w+)")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class PreparedRequest:
    """Everything needed to issue the HTTP call for one tool invocation."""

    method: str
    path: str
    url: str
    query: list[tuple[str, str]] = field(default_factory=lambda: list[tuple[str, str]]())
    headers: dict[str, str] = field(default_factory=lambda: dict[str, str]())
    body: bytes | None = None
    content_type: str | None = None

    @property
    def query_string(self) -> str:
        return urlencode(self.query)


def stringify(value: Any) -> str:
    """Render an argument value for a path, header, query, or form slot."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _pairs(name: str, value: Any) -> list[tuple[str, str]]:
    if isinstance(value, (list, tuple)):
        return [(name, stringify(item)) for item in value]
    return [(name, stringify(value))]


class ExecutionEngine:
    """Executes tools by calling the HTTP endpoints behind them.

    Usage::

        engine = ExecutionEngine("http://localhost:8000")
        result = await engine.execute("GET_users_id", {"id": "42"}, operations)
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def execute(
        self, name: str, arguments: Mapping[str, Any], operations: Mapping[str, Operation]
    ) -> Any:
        """Execute the tool *name* from the operation registry."""
        operation = operations.get(name)
        if operation is None:
            raise ToolNotFoundError(name)
        return await self.execute_operation(operation, arguments, name=name)

    def build_request(
        self, operation: Operation, arguments: Mapping[str, Any], *, name: str = ""
    ) -> PreparedRequest:
        """Partition *arguments* and build the request without sending it.

        Raises:
            ExecutionError: If the JSON body cannot be encoded.
        """
        placeholders = set(_PLACEHOLDER.findall(operation.path))
        path = _PLACEHOLDER.sub(
            lambda m: quote(stringify(arguments[m.group(1)]), safe="")
            if m.group(1) in arguments
            else m.group(0),
            operation.path,
        )

        headers: dict[str, str] = {}
        query: list[tuple[str, str]] = []
        form: list[tuple[str, str]] = []
        unclassified: dict[str, Any] = {}

        for key in sorted(arguments):
            value = arguments[key]
            if key in placeholders:
                continue
            if key in operation.header_params:
                headers[key] = stringify(value)
            elif key in operation.query_params:
                query.extend(_pairs(key, value))
            elif key in operation.form_data_params:
                form.extend(_pairs(key, value))
            else:
                unclassified[key] = value

        body: bytes | None = None
        content_type: str | None = None
        if is_body_method(operation.method):
            if operation.form_data_params:
                if form:
                    body = urlencode(form).encode()
                    content_type = FORM_CONTENT_TYPE
            else:
                payload: Any = unclassified
                if operation.wrapped_body and list(unclassified) == ["body"]:
                    payload = unclassified["body"]
                if unclassified:
                    try:
                        body = json.dumps(payload).encode()
                    except (TypeError, ValueError) as exc:
                        raise ExecutionError(
                            ExecutionErrorKind.MARSHAL, name or operation.path, f"failed to marshal request body: {exc}"
                        ) from exc
                    content_type = JSON_CONTENT_TYPE
        elif unclassified:
            logger.debug("Dropping unclassified arguments for %s: %s", operation.method, sorted(unclassified))

        if content_type:
            headers["Content-Type"] = content_type

        url = self.base_url + path
        if query:
            url += "?" + urlencode(query)

        return PreparedRequest(
            method=operation.method,
            path=path,
            url=url,
            query=query,
            headers=headers,
            body=body,
            content_type=content_type,
        )

    async def execute_operation(
        self, operation: Operation, arguments: Mapping[str, Any], *, name: str = ""
    ) -> Any:
        """Issue the HTTP call and return the decoded response payload.

        JSON responses are decoded; anything else comes back as text.
        Non-2xx responses are returned like any other payload.
        """
        tool = name or f"{operation.method} {operation.path}"
        request = self.build_request(operation, arguments, name=tool)

        with _tracer.start_as_current_span("routemcp.tool.execute") as span:
            span.set_attribute(ATTR_TOOL_NAME, tool)
            span.set_attribute(ATTR_HTTP_METHOD, request.method)
            span.set_attribute(ATTR_HTTP_URL, request.url)

            try:
                async with (
                    httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client,
                    client.stream(request.method, request.url, headers=request.headers, content=request.body) as response,
                ):
                    try:
                        raw = await response.aread()
                    except httpx.HTTPError as exc:
                        raise ExecutionError(
                            ExecutionErrorKind.READ, tool, f"failed to read response: {exc}"
                        ) from exc
            except httpx.HTTPError as exc:
                raise ExecutionError(
                    ExecutionErrorKind.TRANSPORT, tool, f"failed to execute request: {exc}"
                ) from exc

            span.set_attribute(ATTR_HTTP_STATUS, response.status_code)

        if response.status_code >= 400:
            logger.warning("%s %s returned %d", request.method, request.url, response.status_code)

        try:
            return json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return response.text
