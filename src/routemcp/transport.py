"""HTTP transport — the Starlette endpoint behind the MCP mount path.

One JSON-RPC message per POST. The ``Mcp-Session-Id`` header carries the
session created by ``initialize``.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from routemcp.errors import ProtocolError, ProtocolErrorKind, jsonrpc_code
from routemcp.protocol.models import error_response

if TYPE_CHECKING:
    from starlette.requests import Request

    from routemcp.protocol.dispatcher import Dispatcher

logger = logging.getLogger(__name__)

SESSION_HEADER = "Mcp-Session-Id"


class HTTPTransport:
    """Bridges HTTP requests on *mount_path* to a :class:`Dispatcher`.

    Usage::

        transport = HTTPTransport(dispatcher, "/mcp")
        app.router.routes.append(transport.route())
    """

    def __init__(self, dispatcher: Dispatcher, mount_path: str) -> None:
        self.dispatcher = dispatcher
        self.mount_path = mount_path

    def route(self) -> Route:
        return Route(self.mount_path, self.endpoint, methods=["GET", "POST"])

    async def endpoint(self, request: Request) -> Response:
        if request.method == "GET":
            return PlainTextResponse(
                "GET method not supported for HTTP transport",
                status_code=405,
                headers={"Allow": "POST"},
            )

        body = await request.body()
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.debug("Rejecting unparseable MCP message: %s", exc)
            error = ProtocolError(ProtocolErrorKind.PARSE_ERROR, "Parse error")
            envelope = error_response(None, jsonrpc_code(error), str(error))
            return JSONResponse(envelope.model_dump(), status_code=400)

        result = await self.dispatcher.dispatch_raw(data, request.headers.get(SESSION_HEADER))

        headers: dict[str, str] = {}
        if result.session_id:
            headers[SESSION_HEADER] = result.session_id
        return JSONResponse(result.response.model_dump(), headers=headers)
