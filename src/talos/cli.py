"""CLI interface for talos."""

from __future__ import annotations

import asyncio
import functools
from pathlib import Path

import click

from . import __version__
from .chat import ChatService
from .config import (
    DEFAULT_CONVERSATION_TITLE,
    DEFAULT_MODEL,
    DEFAULT_OLLAMA_URL,
    SQLITE_PATH,
    AppState,
)
from .errors import TalosError


def _run(coro):
    """Run a service coroutine, turning talos errors into CLI errors."""
    try:
        return asyncio.run(coro)
    except TalosError as exc:
        raise click.ClickException(exc.describe()) from exc


def pass_service(f):
    """Pass a ChatService built from the group's AppState as first argument."""

    @click.pass_obj
    @functools.wraps(f)
    def wrapper(state: AppState, *args, **kwargs):
        try:
            service = ChatService(state)
        except TalosError as exc:
            raise click.ClickException(exc.describe()) from exc
        return f(service, *args, **kwargs)

    return wrapper


@click.group()
@click.version_option(version=__version__, prog_name="talos")
@click.option(
    "--ollama-url",
    default=DEFAULT_OLLAMA_URL,
    show_default=True,
    help="Base URL of the Ollama server.",
)
@click.option(
    "--db-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=SQLITE_PATH,
    show_default=True,
    envvar="TALOS_DB_PATH",
    help="SQLite database file.",
)
@click.pass_context
def cli(ctx: click.Context, ollama_url: str, db_path: Path):
    """talos — chat with local Ollama models and keep the history.

    Conversations and messages are stored in a SQLite database in the data
    directory. The same operations are available to MCP clients via `talos serve`.
    """
    ctx.obj = AppState(ollama_url=ollama_url, db_path=db_path)


@cli.command()
@click.pass_obj
def serve(state: AppState):
    """Start the MCP server (stdio transport).

    This is used by MCP clients such as Claude Desktop to talk to talos.
    You usually don't need to run this manually.
    """
    from .server import configure, mcp

    configure(state)
    mcp.run(transport="stdio")


@cli.command()
@pass_service
def status(service: ChatService):
    """Check whether the Ollama server is reachable."""
    if _run(service.check_status()):
        click.echo(click.style("connected", fg="green") + f"  {service.state.ollama_url}")
    else:
        click.echo(click.style("disconnected", fg="red") + f"  {service.state.ollama_url}")
        raise SystemExit(1)


@cli.command()
@pass_service
def models(service: ChatService):
    """List the models installed on the Ollama server."""
    for m in _run(service.list_models()):
        size = f"{m.size / 1e9:6.1f} GB" if m.size else "       ?"
        click.echo(f"{size}  {m.name}")


@cli.command()
@click.argument("model", default=DEFAULT_MODEL, required=False)
@click.option("--title", default=DEFAULT_CONVERSATION_TITLE, show_default=True)
@pass_service
def new(service: ChatService, model: str, title: str):
    """Start a conversation bound to MODEL and print its id."""
    click.echo(_run(service.create_conversation(title, model)))


@cli.command("list")
@pass_service
def list_cmd(service: ChatService):
    """List conversations, most recently active first."""
    conversations = _run(service.list_conversations())
    if not conversations:
        click.echo("No conversations yet. Start one with: talos new <model>")
        return
    for c in conversations:
        click.echo(f"{c.id}  {c.updated_at:%Y-%m-%d %H:%M}  [{c.model}]  {c.title}")


@cli.command()
@click.argument("conversation_id")
@pass_service
def show(service: ChatService, conversation_id: str):
    """Print the transcript of a conversation."""
    for msg in _run(service.get_messages(conversation_id)):
        click.echo(click.style(f"{msg.role.value} ", bold=True) + click.style(msg.id, dim=True))
        click.echo(msg.content)
        click.echo()


@cli.command()
@click.argument("conversation_id")
@click.argument("content")
@click.option("--model", default=None, help="Override the conversation's model.")
@pass_service
def send(service: ChatService, conversation_id: str, content: str, model: str | None):
    """Send CONTENT to a conversation and print the reply."""
    click.echo(_run(service.send_turn(conversation_id, content, model)))


@cli.command()
@click.argument("conversation_id")
@click.option("--model", default=None, help="Override the conversation's model.")
@pass_service
def regenerate(service: ChatService, conversation_id: str, model: str | None):
    """Ask the model for a new reply to the existing history."""
    click.echo(_run(service.regenerate_turn(conversation_id, model)))


@cli.command()
@click.argument("conversation_id")
@click.argument("message_id")
@pass_service
def truncate(service: ChatService, conversation_id: str, message_id: str):
    """Delete every message after MESSAGE_ID."""
    deleted = _run(service.truncate_after(conversation_id, message_id))
    click.echo(f"Deleted {deleted} messages.")


@cli.command()
@click.argument("conversation_id")
@click.argument("message_id")
@click.argument("content")
@click.option("--model", default=None, help="Override the conversation's model.")
@pass_service
def edit(service: ChatService, conversation_id: str, message_id: str, content: str, model: str | None):
    """Rewrite MESSAGE_ID, drop what follows and print a fresh reply."""
    click.echo(_run(service.edit_and_resubmit(conversation_id, message_id, content, model)))


@cli.command()
@click.argument("conversation_id")
@click.argument("title")
@pass_service
def rename(service: ChatService, conversation_id: str, title: str):
    """Change a conversation's title."""
    _run(service.rename_conversation(conversation_id, title))


@cli.command()
@click.argument("conversation_id")
@pass_service
def delete(service: ChatService, conversation_id: str):
    """Delete a conversation and its messages."""
    _run(service.delete_conversation(conversation_id))


@cli.command()
@click.confirmation_option(prompt="This will delete all conversations. Are you sure?")
@click.pass_obj
def reset(state: AppState):
    """Delete the conversation database and start fresh."""
    db_path = state.db_path
    files = [db_path, *(db_path.with_name(db_path.name + s) for s in ("-wal", "-shm"))]
    existing = [f for f in files if f.exists()]
    if not existing:
        click.echo("No data to delete.")
        return
    for f in existing:
        f.unlink()
    click.echo(f"Deleted {db_path}")
