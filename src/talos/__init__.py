"""talos — a local conversation store and chat orchestrator for Ollama."""

__version__ = "0.1.0"
