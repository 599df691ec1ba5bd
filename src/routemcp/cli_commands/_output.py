"""Shared CLI output formatters."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from routemcp.models import Operation, Tool

console = Console()


def print_tools_table(tools: list[Tool], operations: dict[str, Operation]) -> None:
    """Pretty-print tools with the route each one calls."""
    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Route")
    table.add_column("Description")

    for tool in tools:
        operation = operations.get(tool.name)
        route = f"{operation.method} {operation.path}" if operation else "-"
        table.add_row(tool.name, route, _truncate(tool.description))

    console.print(table)


def print_tools_json(tools: list[Tool]) -> None:
    console.print_json(json.dumps([t.model_dump(by_alias=True) for t in tools]))


def print_tool(tool: Tool, operation: Operation | None) -> None:
    """Print one tool's description, routing metadata, and input schema."""
    console.print(f"\n[bold]{tool.name}[/bold]")
    console.print(f"  {tool.description}")
    if operation is not None:
        console.print(f"  Route: {operation.method} {operation.path}")
        for label, names in (
            ("Header params", operation.header_params),
            ("Query params", operation.query_params),
            ("Form params", operation.form_data_params),
        ):
            if names:
                console.print(f"  {label}: {', '.join(sorted(names))}")
    console.print("\n[bold]Input schema:[/bold]")
    console.print_json(json.dumps(tool.input_schema))


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
