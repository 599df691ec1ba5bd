"""Route table access and the include/exclude endpoint filter."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from routemcp.models import RouteDescriptor
from routemcp.schema.docs import HTTP_METHODS

if TYPE_CHECKING:
    from routemcp.schema.docs import ApiDocument

logger = logging.getLogger(__name__)

# Only these placeholder names are rewritten to ``*`` when matching patterns.
WILDCARD_PLACEHOLDERS = (":id", ":param")

_STARLETTE_PARAM = re.compile(r"\{(\w+)(?::[^}]*)?\}")
_DOC_PARAM = re.compile(r"\{(\w+)\}")


@runtime_checkable
class RouteProvider(Protocol):
    """Exposes the host application's routing table."""

    def list_routes(self) -> list[RouteDescriptor]: ...


class StaticRouteProvider:
    """A fixed list of routes."""

    def __init__(self, routes: Iterable[RouteDescriptor | tuple[str, str]]) -> None:
        self._routes = [
            r if isinstance(r, RouteDescriptor) else RouteDescriptor(method=r[0], path=r[1])
            for r in routes
        ]

    def list_routes(self) -> list[RouteDescriptor]:
        return list(self._routes)


class StarletteRouteProvider:
    """Reads routes from a Starlette (or FastAPI) application on every call.

    ``{id}`` and ``{id:int}`` path parameters are reported as ``:id``; the
    ``HEAD`` method Starlette adds to every ``GET`` route is skipped.
    """

    def __init__(self, app: Any) -> None:
        self._app = app

    def list_routes(self) -> list[RouteDescriptor]:
        return list(self._walk(getattr(self._app, "routes", []), ""))

    def _walk(self, routes: Iterable[Any], prefix: str) -> Iterable[RouteDescriptor]:
        for route in routes:
            path = prefix + getattr(route, "path", "")
            methods = getattr(route, "methods", None)
            if methods:
                for method in sorted(methods):
                    if method == "HEAD" and "GET" in methods:
                        continue
                    yield RouteDescriptor(method=method, path=starlette_to_route_path(path))
            elif getattr(route, "routes", None):
                yield from self._walk(route.routes, path)


def starlette_to_route_path(path: str) -> str:
    """Convert ``/users/{id:int}`` to ``/users/:id``."""
    return _STARLETTE_PARAM.sub(r":\1", path) or "/"


def document_routes(document: ApiDocument) -> list[RouteDescriptor]:
    """One route per documented operation, in document order."""
    routes: list[RouteDescriptor] = []
    base = document.base_path.rstrip("/")
    for doc_path, operations in document.paths.items():
        path = base + _DOC_PARAM.sub(r":\1", doc_path)
        for method in HTTP_METHODS:
            if method in operations:
                routes.append(RouteDescriptor(method=method, path=path))
    return routes


def matches_endpoint(path: str, pattern: str) -> bool:
    """Check whether a route path matches a filter pattern.

    Supports exact paths, ``*``-suffixed prefixes, and a narrow placeholder
    form where only ``:id`` and ``:param`` segments are read as ``*``.
    """
    if path == pattern:
        return True

    if pattern.endswith("*"):
        return path.startswith(pattern[:-1])

    if ":" in path:
        normalized = path
        for placeholder in WILDCARD_PLACEHOLDERS:
            normalized = normalized.replace(placeholder, "*")
        return normalized == pattern

    return False


def _same_path(a: str, b: str) -> bool:
    return a.rstrip("/") == b.rstrip("/")


def _tags_for(document: ApiDocument | None, route: RouteDescriptor) -> list[str]:
    if document is None:
        return []
    operation = document.find_operation(route.method, route.path)
    return operation.tags if operation is not None else []


def filter_routes(
    routes: Iterable[RouteDescriptor],
    include: Sequence[str] = (),
    exclude: Sequence[str] = (),
    *,
    mount_path: str | None = None,
    include_tags: Sequence[str] = (),
    exclude_tags: Sequence[str] = (),
    document: ApiDocument | None = None,
) -> list[RouteDescriptor]:
    """Return the routes to expose as tools, preserving input order.

    The mount path itself is never exposed. Non-empty include patterns are a
    strict allow-list and exclude patterns are then ignored; otherwise routes
    matching any exclude pattern are dropped. Tag filters follow the same
    precedence and need *document* to see operation tags.
    """
    filtered: list[RouteDescriptor] = []
    for route in routes:
        if mount_path is not None and _same_path(route.path, mount_path):
            continue
        if include:
            if not any(matches_endpoint(route.path, p) for p in include):
                continue
        elif any(matches_endpoint(route.path, p) for p in exclude):
            continue

        tags = _tags_for(document, route) if (include_tags or exclude_tags) else []
        if include_tags:
            if not set(tags) & set(include_tags):
                continue
        elif exclude_tags and set(tags) & set(exclude_tags):
            continue

        filtered.append(route)

    logger.debug("Route filter kept %d route(s)", len(filtered))
    return filtered
