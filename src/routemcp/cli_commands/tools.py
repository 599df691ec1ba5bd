"""``routemcp tools`` — preview the tools an API document produces."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from routemcp.builder import build_tools
from routemcp.cli_commands._output import console, print_tool, print_tools_json, print_tools_table
from routemcp.config import ServerConfig, load_config
from routemcp.errors import ConfigurationError
from routemcp.models import Operation, Tool
from routemcp.routing import document_routes, filter_routes
from routemcp.schema.docs import load_document


@click.group()
def tools() -> None:
    """Preview tools derived from Swagger / OpenAPI documents."""


def _build(
    document_file: str,
    config_file: str | None,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
) -> tuple[list[Tool], dict[str, Operation]]:
    config = load_config(Path(config_file)) if config_file else ServerConfig()
    document = load_document(Path(document_file))
    routes = filter_routes(
        document_routes(document),
        include or config.include_operations,
        exclude or config.exclude_operations,
        include_tags=config.include_tags,
        exclude_tags=config.exclude_tags,
        document=document,
    )
    return build_tools(routes, document=document)


@tools.command("list")
@click.argument("document", type=click.Path(exists=True))
@click.option("--include", "-i", multiple=True, help="Only expose paths matching this pattern.")
@click.option("--exclude", "-e", multiple=True, help="Hide paths matching this pattern.")
@click.option("--config", "config_file", type=click.Path(exists=True), default=None, help="Server config YAML.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def list_tools(
    document: str,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    config_file: str | None,
    as_json: bool,
) -> None:
    """List the tools built from the API DOCUMENT (JSON or YAML)."""
    try:
        tool_list, operations = _build(document, config_file, include, exclude)
    except ConfigurationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    if as_json:
        print_tools_json(tool_list)
        return

    if not tool_list:
        console.print("[yellow]No tools found.[/yellow]")
        return

    print_tools_table(tool_list, operations)


@tools.command("show")
@click.argument("document", type=click.Path(exists=True))
@click.argument("name")
@click.option("--config", "config_file", type=click.Path(exists=True), default=None, help="Server config YAML.")
def show_tool(document: str, name: str, config_file: str | None) -> None:
    """Show the input schema of tool NAME from the API DOCUMENT."""
    try:
        tool_list, operations = _build(document, config_file, (), ())
    except ConfigurationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    for tool in tool_list:
        if tool.name == name:
            print_tool(tool, operations.get(name))
            return

    console.print(f"[red]Tool not found:[/red] {name}")
    sys.exit(1)
