"""Pytest fixtures.

Every test gets a throwaway SQLite file, a frozen clock for the store and a
scripted Ollama server behind ``httpx.MockTransport``.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from talos.chat import ChatService
from talos.config import AppState
from talos.ollama import OllamaClient
from talos.storage import ConversationStore
from tests.helpers import ENDPOINT, FakeClock, FakeOllama


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "talos.db"


@pytest.fixture
def store(db_path: Path, clock: FakeClock) -> ConversationStore:
    return ConversationStore(db_path, clock=clock)


@pytest.fixture
def ollama() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
def state(db_path: Path) -> AppState:
    return AppState(ollama_url=ENDPOINT, db_path=db_path)


@pytest.fixture
def service(state: AppState, store: ConversationStore, ollama: FakeOllama) -> ChatService:
    return ChatService(state, store=store, client=OllamaClient(transport=ollama.transport))
