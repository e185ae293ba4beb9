"""FastMCP server exposing conversations and chat turns as tools."""

from __future__ import annotations

import logging
import sys
from datetime import datetime

from mcp.server.fastmcp import FastMCP

from .chat import ChatService
from .config import DEFAULT_CONVERSATION_TITLE, DEFAULT_MODEL, LOG_LEVEL, AppState
from .errors import TalosError

# Logging to stderr only — stdout is the MCP JSON-RPC transport
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)

mcp = FastMCP(
    "talos",
    instructions=(
        "Chat with local Ollama models and keep the conversations on disk. "
        "Use create_conversation to start a thread and send_message to talk in it. "
        "Use get_messages to read a transcript, truncate_conversation and "
        "regenerate_response to retry a reply, edit_message to rewrite a prompt, "
        "and check_status / list_models "
        "to inspect the Ollama server."
    ),
)

# Singleton service — reused across tool calls
_service: ChatService | None = None


def _get_service() -> ChatService:
    global _service
    if _service is None:
        _service = ChatService(AppState())
    return _service


def configure(state: AppState) -> None:
    """Bind the tools to ``state`` instead of the environment defaults."""
    global _service
    _service = ChatService(state)


def _format_dt(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M")


@mcp.tool()
async def create_conversation(
    title: str = DEFAULT_CONVERSATION_TITLE, model: str = DEFAULT_MODEL
) -> str:
    """Start a new conversation bound to an Ollama model.

    Args:
        title: Display title
        model: Ollama model name, e.g. "llama3"
    """
    try:
        conversation_id = await _get_service().create_conversation(title, model)
    except TalosError as exc:
        return exc.describe()
    return f"Created conversation `{conversation_id}`."


@mcp.tool()
async def list_conversations() -> str:
    """List conversations, most recently active first."""
    try:
        conversations = await _get_service().list_conversations()
    except TalosError as exc:
        return exc.describe()

    if not conversations:
        return "No conversations yet."

    lines = [f"{len(conversations)} conversations:\n"]
    for i, c in enumerate(conversations, 1):
        lines.append(f"{i}. **{c.title}** ({_format_dt(c.updated_at)})")
        lines.append(f"   ID: `{c.id}` | Model: {c.model}")
    return "\n".join(lines)


@mcp.tool()
async def get_messages(conversation_id: str) -> str:
    """Read the full transcript of a conversation.

    Args:
        conversation_id: The conversation UUID
    """
    try:
        messages = await _get_service().get_messages(conversation_id)
    except TalosError as exc:
        return exc.describe()

    if not messages:
        return "No messages."

    lines = []
    for msg in messages:
        lines.append(f"**{msg.role.value}** ({_format_dt(msg.created_at)}) `{msg.id}`:")
        lines.append(msg.content)
        lines.append("")
    return "\n".join(lines)


@mcp.tool()
async def delete_conversation(conversation_id: str) -> str:
    """Delete a conversation and all of its messages."""
    try:
        await _get_service().delete_conversation(conversation_id)
    except TalosError as exc:
        return exc.describe()
    return f"Deleted conversation `{conversation_id}`."


@mcp.tool()
async def rename_conversation(conversation_id: str, title: str) -> str:
    """Change a conversation's title."""
    try:
        await _get_service().rename_conversation(conversation_id, title)
    except TalosError as exc:
        return exc.describe()
    return f"Renamed conversation `{conversation_id}` to {title!r}."


@mcp.tool()
async def update_message(message_id: str, content: str) -> str:
    """Replace the content of a stored message."""
    try:
        await _get_service().update_message_content(message_id, content)
    except TalosError as exc:
        return exc.describe()
    return f"Updated message `{message_id}`."


@mcp.tool()
async def truncate_conversation(conversation_id: str, after_message_id: str) -> str:
    """Delete every message that comes after the given one.

    Args:
        conversation_id: The conversation UUID
        after_message_id: The last message to keep
    """
    try:
        deleted = await _get_service().truncate_after(conversation_id, after_message_id)
    except TalosError as exc:
        return exc.describe()
    return f"Deleted {deleted} messages."


@mcp.tool()
async def check_status() -> str:
    """Check whether the Ollama server is reachable."""
    service = _get_service()
    if await service.check_status():
        return f"Ollama is running at {service.state.ollama_url}."
    return f"Ollama is not reachable at {service.state.ollama_url}."


@mcp.tool()
async def list_models() -> str:
    """List the models installed on the Ollama server."""
    try:
        models = await _get_service().list_models()
    except TalosError as exc:
        return exc.describe()

    if not models:
        return "No models installed."
    lines = []
    for m in models:
        size = f" ({m.size / 1e9:.1f} GB)" if m.size else ""
        lines.append(f"- {m.name}{size}")
    return "\n".join(lines)


@mcp.tool()
async def send_message(conversation_id: str, content: str, model: str | None = None) -> str:
    """Send a user message and return the model's reply.

    Args:
        conversation_id: The conversation UUID
        content: The user's message
        model: Model override (defaults to the conversation's model)
    """
    try:
        return await _get_service().send_turn(conversation_id, content, model)
    except TalosError as exc:
        return exc.describe()


@mcp.tool()
async def regenerate_response(conversation_id: str, model: str | None = None) -> str:
    """Ask the model for a new reply to the existing history."""
    try:
        return await _get_service().regenerate_turn(conversation_id, model)
    except TalosError as exc:
        return exc.describe()


@mcp.tool()
async def edit_message(
    conversation_id: str, message_id: str, content: str, model: str | None = None
) -> str:
    """Rewrite a message, drop everything after it and return a fresh reply.

    Args:
        conversation_id: The conversation UUID
        message_id: The message to rewrite (usually a user message)
        content: The new message content
        model: Model override (defaults to the conversation's model)
    """
    try:
        return await _get_service().edit_and_resubmit(conversation_id, message_id, content, model)
    except TalosError as exc:
        return exc.describe()


@mcp.tool()
def set_endpoint(url: str) -> str:
    """Point talos at a different Ollama server, e.g. "http://localhost:11434"."""
    state = _get_service().state
    try:
        state.set_ollama_url(url)
    except ValueError as exc:
        return f"Error: {exc}"
    return f"Ollama endpoint set to {state.ollama_url}."
