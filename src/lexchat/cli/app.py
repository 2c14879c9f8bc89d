"""Main CLI application.

Click commands for lexchat: serve, tools, todo.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table

from lexchat import __version__
from lexchat.config.loader import load_config
from lexchat.core.errors import ConfigError, StorageError

if TYPE_CHECKING:
    from lexchat.config.schema import LexchatConfig
    from lexchat.tools.todo import TodoStore

console = Console()


# ── Helpers ──────────────────────────────────────────────────────


def _error(msg: str) -> None:
    """Print an error message to stderr and exit."""
    click.echo(f"Error: {msg}", err=True)
    sys.exit(1)


def _load_config(config_path: str | None) -> LexchatConfig:
    try:
        return load_config(path=config_path)
    except ConfigError as e:
        _error(str(e))
        raise  # unreachable, keeps mypy happy


def _todo_store(ctx: click.Context) -> TodoStore:
    from lexchat.tools.todo import TodoStore

    config = _load_config(ctx.obj["config_path"])
    return TodoStore(config.todo.path)


# ── CLI group ────────────────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="lexchat")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    default=None,
    help="Path to config file.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """lexchat - streaming legal assistant.

    Proxies chat to Claude and runs legal analysis tools mid-stream.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ── serve ────────────────────────────────────────────────────────


@cli.command()
@click.option("--host", default=None, help="Host to bind to (overrides config).")
@click.option(
    "--port", type=int, default=None, help="Port to bind to (overrides config)."
)
@click.option(
    "--reload", is_flag=True, default=False, help="Enable auto-reload for development."
)
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Start the chat API server."""
    import uvicorn

    from lexchat.api.app import create_app
    from lexchat.core.logging import setup_logging

    config = _load_config(ctx.obj["config_path"])
    setup_logging(config.logging)

    if not config.provider.api_key:
        click.echo(
            f"Warning: {config.provider.api_key_env or 'API key'} is not set.",
            err=True,
        )

    app = create_app(config)
    uvicorn.run(
        app,
        host=host or config.api.host,
        port=port or config.api.port,
        reload=reload,
        log_config=None,
    )


# ── tools ────────────────────────────────────────────────────────


@cli.command()
@click.option("--schema", is_flag=True, default=False, help="Show input fields.")
def tools(schema: bool) -> None:
    """List the tools offered to the model."""
    from lexchat.tools.registry import default_registry

    table = Table(title="Tools")
    table.add_column("Name", style="bold cyan")
    table.add_column("Description")
    if schema:
        table.add_column("Fields")

    for spec in default_registry().list_tools():
        row = [spec.name, spec.description]
        if schema:
            row.append(
                ", ".join(
                    p.name + ("*" if p.name in spec.required else "")
                    for p in spec.properties
                )
            )
        table.add_row(*row)

    console.print(table)


# ── todo ─────────────────────────────────────────────────────────


@cli.group()
def todo() -> None:
    """Manage the to-do list shared with the todo_manager tool."""


@todo.command("add")
@click.argument("text")
@click.pass_context
def todo_add(ctx: click.Context, text: str) -> None:
    """Add a to-do item."""
    try:
        item_id = _todo_store(ctx).add(text)
    except StorageError as e:
        _error(str(e))
        return
    click.echo(item_id)


@todo.command("list")
@click.pass_context
def todo_list(ctx: click.Context) -> None:
    """List to-do items."""
    try:
        items = _todo_store(ctx).list()
    except StorageError as e:
        _error(str(e))
        return
    if not items:
        click.echo("No to-do items.")
        return
    for item in items:
        click.echo(f"{item.id}  {item.item}")


@todo.command("remove")
@click.argument("item_id")
@click.pass_context
def todo_remove(ctx: click.Context, item_id: str) -> None:
    """Remove a to-do item by id."""
    try:
        removed = _todo_store(ctx).remove(item_id)
    except StorageError as e:
        _error(str(e))
        return
    if not removed:
        _error(f"No to-do item with id {item_id}")
        return
    click.echo(f"Removed {item_id}")


def main() -> None:
    cli(obj={})
