"""owllama: command-line chat client for a local Ollama server."""

__version__ = "0.3.0"
