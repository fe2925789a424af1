"""
Chat models for conversation context, persisted history and the wire format.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Older history files stored assistant replies under this role name
_LEGACY_ASSISTANT_ROLES = {"ollama"}


class Message(BaseModel):
    """
    A single message in the conversation.

    The engine only creates "user" and "assistant" messages. Other roles found
    in a history file are kept as-is so earlier sessions survive a rewrite.
    """

    model_config = ConfigDict(frozen=True)

    role: str
    content: str = ""

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> Any:
        if isinstance(value, str) and value.lower() in _LEGACY_ASSISTANT_ROLES:
            return "assistant"
        return value

    @field_validator("content", mode="before")
    @classmethod
    def _null_content(cls, value: Any) -> Any:
        return "" if value is None else value


class Session(BaseModel):
    """A conversation transcript kept for history."""

    session_key: str
    messages: list[Message] = Field(default_factory=list)

    @field_validator("messages", mode="before")
    @classmethod
    def _null_messages(cls, value: Any) -> Any:
        return [] if value is None else value

    def has_user_input(self) -> bool:
        """True if at least one user message has non-blank content."""
        return any(m.role == "user" and m.content.strip() for m in self.messages)

    def first_user_message(self) -> str:
        for msg in self.messages:
            if msg.role == "user":
                return msg.content
        return ""


class History(BaseModel):
    """All saved sessions, oldest first."""

    sessions: list[Session] = Field(default_factory=list)

    @field_validator("sessions", mode="before")
    @classmethod
    def _null_sessions(cls, value: Any) -> Any:
        return [] if value is None else value

    def find(self, session_key: str) -> Session | None:
        for session in self.sessions:
            if session.session_key == session_key:
                return session
        return None


# ---------------------------------------------------------------------------
# Wire models for the inference server
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    """Body of a POST /api/chat request."""

    model: str
    messages: list[Message]


class ChunkMessage(BaseModel):
    role: str = ""
    content: str = ""

    @field_validator("role", "content", mode="before")
    @classmethod
    def _null_text(cls, value: Any) -> Any:
        return "" if value is None else value


class ChatChunk(BaseModel):
    """One line of a /api/chat response body."""

    message: ChunkMessage = Field(default_factory=ChunkMessage)
    done: bool = False

    @field_validator("message", mode="before")
    @classmethod
    def _null_message(cls, value: Any) -> Any:
        return ChunkMessage() if value is None else value

    @field_validator("done", mode="before")
    @classmethod
    def _null_done(cls, value: Any) -> Any:
        return False if value is None else value


class GenerateRequest(BaseModel):
    """Body of a POST /api/generate request."""

    model: str
    prompt: str


class GenerateChunk(BaseModel):
    """One line of a /api/generate response body."""

    response: str = ""
    done: bool = False
