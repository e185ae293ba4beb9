"""Data models for conversations, messages and the Ollama API."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Conversation(BaseModel):
    id: str
    title: str
    model: str
    created_at: datetime
    updated_at: datetime


class Message(BaseModel):
    id: str
    conversation_id: str
    role: Role
    content: str
    created_at: datetime
    seq: int


class ChatMessage(BaseModel):
    """A role/content pair as sent to and received from ``/api/chat``."""

    role: Role
    content: str


class ChatRequest(BaseModel):
    model: str
    messages: list[ChatMessage]
    stream: bool = False


class ChatResponse(BaseModel):
    message: ChatMessage | None = None
    done: bool = False


class ModelInfo(BaseModel):
    name: str
    modified_at: str | None = None
    size: int | None = None


class ModelsResponse(BaseModel):
    models: list[ModelInfo]
