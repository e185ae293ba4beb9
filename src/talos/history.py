"""Project stored messages into the history sent to the model."""

from __future__ import annotations

from collections.abc import Iterable

from .models import ChatMessage, Message


def project_history(messages: Iterable[Message]) -> list[ChatMessage]:
    """Keep only role and content, in the given order. Empty in, empty out."""
    return [ChatMessage(role=m.role, content=m.content) for m in messages]
