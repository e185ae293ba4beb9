"""Chat turn orchestration: send, regenerate, truncate and friends.

``ChatService`` is the single entry point used by the CLI and the MCP server.
It composes the SQLite store, the history projection and the Ollama client.
The store is re-read on every step; nothing about a conversation is cached
between calls.

Failure policy for a turn: the user message is committed before the model is
called and stays committed if the call fails, so the conversation shows an
unanswered prompt rather than silently losing it. Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import uuid

from .config import AppState
from .errors import CompletionError, InvalidIdentifier, StorageError
from .history import project_history
from .models import Conversation, Message, ModelInfo, Role
from .ollama import OllamaClient
from .storage import ConversationStore

logger = logging.getLogger(__name__)


def _validate_id(value: str, what: str) -> str:
    try:
        uuid.UUID(str(value))
    except ValueError as exc:
        raise InvalidIdentifier(f"Malformed {what} id: {value!r}") from exc
    return value


class ChatService:
    def __init__(
        self,
        state: AppState,
        store: ConversationStore | None = None,
        client: OllamaClient | None = None,
    ):
        self.state = state
        self.store = store if store is not None else ConversationStore(state.db_path)
        self.client = client if client is not None else OllamaClient()

    # --- Conversations and messages ---

    async def create_conversation(self, title: str, model: str) -> str:
        return await asyncio.to_thread(self.store.create_conversation, title, model)

    async def list_conversations(self) -> list[Conversation]:
        return await asyncio.to_thread(self.store.list_conversations)

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        return await asyncio.to_thread(self.store.get_conversation, conversation_id)

    async def get_messages(self, conversation_id: str) -> list[Message]:
        return await asyncio.to_thread(self.store.get_messages, conversation_id)

    async def delete_conversation(self, conversation_id: str):
        await asyncio.to_thread(self.store.delete_conversation, conversation_id)

    async def rename_conversation(self, conversation_id: str, title: str):
        await asyncio.to_thread(self.store.rename_conversation, conversation_id, title)

    async def update_message_content(self, message_id: str, content: str):
        await asyncio.to_thread(self.store.update_message_content, message_id, content)

    async def truncate_after(self, conversation_id: str, message_id: str) -> int:
        """Delete every message after ``message_id``; returns how many were removed."""
        _validate_id(conversation_id, "conversation")
        _validate_id(message_id, "message")
        return await asyncio.to_thread(
            self.store.delete_messages_after, conversation_id, message_id
        )

    # --- Completion service ---

    async def check_status(self) -> bool:
        return await self.client.check_status(self.state.ollama_url)

    async def list_models(self) -> list[ModelInfo]:
        return await self.client.list_models(self.state.ollama_url)

    # --- Turns ---

    async def send_turn(
        self, conversation_id: str, content: str, model: str | None = None
    ) -> str:
        """Record a user message, ask the model, record and return its reply."""
        model = model or await self._bound_model(conversation_id)
        logger.debug("Sending turn in %s with model %s", conversation_id, model)
        try:
            await asyncio.to_thread(
                self.store.add_message, conversation_id, Role.USER, content
            )
        except StorageError as exc:
            raise StorageError(f"Failed to save user message: {exc}") from exc
        return await self._reply(conversation_id, model)

    async def regenerate_turn(self, conversation_id: str, model: str | None = None) -> str:
        """Ask the model again for the existing history and append its reply.

        Earlier assistant messages are left alone; truncate first to replace one.
        """
        model = model or await self._bound_model(conversation_id)
        logger.debug("Regenerating reply in %s with model %s", conversation_id, model)
        return await self._reply(conversation_id, model)

    async def edit_and_resubmit(
        self, conversation_id: str, message_id: str, content: str, model: str | None = None
    ) -> str:
        """Rewrite a message, drop everything after it and regenerate the reply."""
        _validate_id(conversation_id, "conversation")
        _validate_id(message_id, "message")
        await self.update_message_content(message_id, content)
        await self.truncate_after(conversation_id, message_id)
        return await self.regenerate_turn(conversation_id, model)

    async def _reply(self, conversation_id: str, model: str) -> str:
        try:
            messages = await asyncio.to_thread(self.store.get_messages, conversation_id)
        except StorageError as exc:
            raise StorageError(f"Failed to fetch history: {exc}") from exc

        endpoint = self.state.ollama_url
        try:
            reply = await self.client.complete(endpoint, model, project_history(messages))
        except CompletionError as exc:
            logger.warning("Completion failed for %s: %s", conversation_id, exc)
            raise

        try:
            await asyncio.to_thread(
                self.store.add_message, conversation_id, Role.ASSISTANT, reply
            )
        except StorageError as exc:
            raise StorageError(f"Failed to save AI message: {exc}") from exc
        return reply

    async def _bound_model(self, conversation_id: str) -> str:
        conversation = await self.get_conversation(conversation_id)
        if conversation is None:
            raise StorageError(f"Conversation not found: {conversation_id}")
        return conversation.model
