"""CLI for running and inspecting the RollDev MCP server."""

from __future__ import annotations

import asyncio
import json
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table
import typer

app = typer.Typer(
    name="rolldev-mcp",
    help="RollDev MCP Server CLI",
    add_completion=False,
)
console = Console()


@app.command()
def serve(
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to rolldev-mcp.toml"),
    log_level: Optional[str] = typer.Option(None, "--log-level", "-l", help="Override log level"),
) -> None:
    """Run the MCP server on stdio."""
    from rolldev_mcp.config import load_config
    from rolldev_mcp.server import serve as run_server

    config = load_config(config_path)
    if log_level:
        config.server.log_level = log_level
        config.observability.log_level = log_level
        config.validate()

    run_server(config)


@app.command()
def envs(
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="Path to rolldev-mcp.toml"),
    as_json: bool = typer.Option(False, "--json", help="Print the structured payload"),
    paths_only: bool = typer.Option(False, "--paths", help="Print only name and directory"),
) -> None:
    """List running RollDev environments."""
    from rolldev_mcp.config import load_config
    from rolldev_mcp.dispatcher import Dispatcher

    dispatcher = Dispatcher(load_config(config_path))

    if paths_only:
        for env in asyncio.run(dispatcher.environment_paths()):
            typer.echo(f"{env['name']}\t{env['path'] or '-'}")
        return

    response = asyncio.run(dispatcher.list_environments())
    if as_json:
        typer.echo(response.text)
        if response.is_error:
            raise typer.Exit(1)
        return

    payload = json.loads(response.text)
    if not payload["success"]:
        console.print(f"[red]✗[/] {escape(payload['command'])} failed: {escape(payload.get('error', ''))}", soft_wrap=True)
        raise typer.Exit(1)

    environments = payload["environments"]
    if not environments:
        console.print("[yellow]No running environments found[/]")
        return

    table = Table(title="RollDev environments")
    table.add_column("Name", style="bold")
    table.add_column("Directory")
    table.add_column("URL")
    table.add_column("Network")
    table.add_column("Containers", justify="right")
    for env in environments:
        table.add_row(
            env["name"],
            env["path"] or "-",
            env["url"] or "-",
            env["network"] or "-",
            str(env["containers"]),
        )
    console.print(table)


@app.command()
def tools() -> None:
    """List the MCP tools this server registers."""
    from rolldev_mcp.server import TOOLS

    table = Table(show_header=True)
    table.add_column("Tool", style="cyan")
    table.add_column("Required")
    table.add_column("Description")
    for tool in TOOLS:
        required = ", ".join(tool.inputSchema.get("required", [])) or "-"
        table.add_row(tool.name, required, tool.description or "")
    console.print(table)


def main() -> None:
    """Entry point for rolldev-mcp CLI."""
    app()


if __name__ == "__main__":
    main()
