"""Central configuration for paths, endpoints and constants."""

from __future__ import annotations

import os
import threading
from pathlib import Path

# Data directory — override with TALOS_DATA_DIR env var
DATA_DIR = Path(os.environ.get("TALOS_DATA_DIR", str(Path.home() / ".talos")))

# Database path
SQLITE_PATH = DATA_DIR / "talos.db"

# Ollama endpoint
DEFAULT_OLLAMA_URL = os.environ.get("TALOS_OLLAMA_URL", "http://localhost:11434")
REQUEST_TIMEOUT = float(os.environ.get("TALOS_REQUEST_TIMEOUT", "120"))

# Defaults used when a conversation is started without explicit values
DEFAULT_CONVERSATION_TITLE = "New Chat"
DEFAULT_MODEL = "llama3"

LOG_LEVEL = os.environ.get("TALOS_LOG_LEVEL", "WARNING")


class AppState:
    """Shared, mutable runtime settings.

    Every in-flight operation reads the endpoint through this holder, so writes
    go through a lock and readers always see a complete value.
    """

    def __init__(self, ollama_url: str = DEFAULT_OLLAMA_URL, db_path: Path = SQLITE_PATH):
        self._lock = threading.Lock()
        self._ollama_url = ollama_url.rstrip("/")
        self._db_path = Path(db_path)

    @property
    def ollama_url(self) -> str:
        with self._lock:
            return self._ollama_url

    def set_ollama_url(self, url: str) -> None:
        url = url.strip().rstrip("/")
        if not url:
            raise ValueError("Ollama URL must not be empty")
        with self._lock:
            self._ollama_url = url

    @property
    def db_path(self) -> Path:
        with self._lock:
            return self._db_path
