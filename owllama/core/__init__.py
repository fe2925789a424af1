"""Core module for owllama."""

from owllama.core.chat import ChatEngine, EngineState, Outcome, TurnResult, parse_command
from owllama.core.client import OllamaClient
from owllama.core.config import ConfigManager, Settings, load_settings
from owllama.core.decoder import decode_chat_body, decode_generate_body
from owllama.core.errors import (
    ExecutableNotFoundError,
    HistoryWriteError,
    InferenceError,
    OwllamaError,
    SearchError,
    SessionClosedError,
)
from owllama.core.history import HistoryStore, list_summaries, view_session
from owllama.core.thinking import ThinkFilter

__all__ = [
    "ChatEngine",
    "ConfigManager",
    "EngineState",
    "ExecutableNotFoundError",
    "HistoryStore",
    "HistoryWriteError",
    "InferenceError",
    "OllamaClient",
    "Outcome",
    "OwllamaError",
    "SearchError",
    "SessionClosedError",
    "Settings",
    "ThinkFilter",
    "TurnResult",
    "decode_chat_body",
    "decode_generate_body",
    "list_summaries",
    "load_settings",
    "parse_command",
    "view_session",
]
