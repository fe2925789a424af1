"""Data models for owllama."""

from owllama.models.chat import (
    ChatChunk,
    ChatRequest,
    ChunkMessage,
    GenerateChunk,
    GenerateRequest,
    History,
    Message,
    Session,
)

__all__ = [
    "ChatChunk",
    "ChatRequest",
    "ChunkMessage",
    "GenerateChunk",
    "GenerateRequest",
    "History",
    "Message",
    "Session",
]
