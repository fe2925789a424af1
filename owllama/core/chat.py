"""
Interactive chat session engine.

The engine owns the conversation context. The server keeps no state between
calls, so every request carries the whole context in order. Each completed
turn also goes into the session transcript, which is appended to the history
file when the session ends.

States:
    AWAITING_INPUT -> PROCESSING -> AWAITING_INPUT | TERMINATED
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from owllama.core.decoder import decode_chat_body
from owllama.core.errors import InferenceError, SearchError, SessionClosedError
from owllama.core.history import HistoryStore
from owllama.core.thinking import ThinkFilter
from owllama.models.chat import ChatRequest, Message, Session

logger = logging.getLogger(__name__)

EXIT_TOKEN = "/exit"
CLEAR_TOKEN = "/clear"
EDIT_TOKENS = ("/edit", "/vi")
SEARCH_TOKEN = "/search"


def new_session_key() -> str:
    """Generate a random 8-character session key."""
    return uuid.uuid4().hex[:8]


class ChatTransport(Protocol):
    def chat(self, request: ChatRequest) -> bytes: ...


class EngineState(Enum):
    AWAITING_INPUT = "awaiting_input"
    PROCESSING = "processing"
    TERMINATED = "terminated"


class Outcome(Enum):
    REPLIED = "replied"
    FAILED = "failed"
    CLEARED = "cleared"
    IGNORED = "ignored"
    SEARCHED = "searched"
    EXIT = "exit"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Exit:
    pass


@dataclass(frozen=True)
class ClearContext:
    pass


@dataclass(frozen=True)
class Blank:
    pass


@dataclass(frozen=True)
class Edit:
    pass


@dataclass(frozen=True)
class Search:
    query: str


@dataclass(frozen=True)
class Turn:
    text: str


Command = Exit | ClearContext | Blank | Edit | Search | Turn


def parse_command(
    text: str,
    exit_token: str = EXIT_TOKEN,
    clear_token: str = CLEAR_TOKEN,
) -> Command:
    """Classify one line of user input."""
    stripped = text.strip()

    if stripped == exit_token:
        return Exit()
    if stripped == clear_token:
        return ClearContext()
    if not stripped:
        return Blank()
    if stripped in EDIT_TOKENS:
        return Edit()
    if stripped == SEARCH_TOKEN or stripped.startswith(SEARCH_TOKEN + " "):
        return Search(query=stripped[len(SEARCH_TOKEN) :].strip())
    return Turn(text=stripped)


@dataclass
class TurnResult:
    """What happened to one line of input."""

    outcome: Outcome
    prompt: str | None = None
    reply: str | None = None  # As received, stored in context and transcript
    display: str | None = None  # Reasoning blocks removed
    message: str | None = None  # Confirmation or error text


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class ChatEngine:
    """
    Runs one interactive chat session against a single model.

    Collaborators are injected so the engine can be driven without a
    terminal or a server:
        client:      sends a ChatRequest, returns the raw response body
        store:       loads history at start, saves it at the end
        key_factory: produces the session key
        progress:    context manager factory wrapped around each request
        editor:      returns text composed in an external editor
        searcher:    returns a text summary for a search query
    """

    def __init__(
        self,
        model: str,
        client: ChatTransport,
        store: HistoryStore,
        *,
        key_factory: Callable[[], str] = new_session_key,
        think_filter: ThinkFilter | None = None,
        exit_token: str = EXIT_TOKEN,
        clear_token: str = CLEAR_TOKEN,
        progress: Callable[[], AbstractContextManager] | None = None,
        editor: Callable[[], str | None] | None = None,
        searcher: Callable[[str], str] | None = None,
    ):
        self.model = model
        self.client = client
        self.store = store
        self.think_filter = think_filter or ThinkFilter()
        self.exit_token = exit_token
        self.clear_token = clear_token
        self._progress = progress or nullcontext
        self._editor = editor
        self._searcher = searcher

        self.history = store.load()
        self.session = Session(session_key=key_factory())
        self.context: list[Message] = []
        self.state = EngineState.AWAITING_INPUT
        self._finished = False
        self._saved = False

        logger.debug(
            f"Started session {self.session.session_key} with {self.model} "
            f"({len(self.history.sessions)} saved session(s))"
        )

    @property
    def session_key(self) -> str:
        return self.session.session_key

    def submit(self, text: str) -> TurnResult:
        """
        Handle one line of user input.

        Raises:
            SessionClosedError: If the session has already terminated
        """
        if self.state is EngineState.TERMINATED:
            raise SessionClosedError(f"Session {self.session_key} has ended")

        command = parse_command(text, self.exit_token, self.clear_token)

        if isinstance(command, Exit):
            self.state = EngineState.TERMINATED
            return TurnResult(Outcome.EXIT, message="Exiting chat session.")
        if isinstance(command, ClearContext):
            self.context.clear()
            return TurnResult(Outcome.CLEARED, message="Context cleared.")
        if isinstance(command, Blank):
            return TurnResult(Outcome.IGNORED)
        if isinstance(command, Edit):
            return self._edit()
        if isinstance(command, Search):
            return self._search(command.query)
        if isinstance(command, Turn):
            return self._turn(command.text)
        raise TypeError(f"Unhandled command: {command!r}")

    def _turn(self, prompt: str) -> TurnResult:
        user_msg = Message(role="user", content=prompt)
        self.context.append(user_msg)
        self.state = EngineState.PROCESSING

        request = ChatRequest(model=self.model, messages=list(self.context))
        try:
            with self._progress():
                body = self.client.chat(request)
        except InferenceError as e:
            # The user message stays in context
            logger.info(f"Turn failed in session {self.session_key}: {e}")
            return TurnResult(Outcome.FAILED, prompt=prompt, message=str(e))
        finally:
            self.state = EngineState.AWAITING_INPUT

        reply = decode_chat_body(body)
        assistant_msg = Message(role="assistant", content=reply)
        self.context.append(assistant_msg)
        self.session.messages.append(user_msg)
        self.session.messages.append(assistant_msg)

        return TurnResult(
            Outcome.REPLIED,
            prompt=prompt,
            reply=reply,
            display=self.think_filter(self.model, reply),
        )

    def _edit(self) -> TurnResult:
        if self._editor is None:
            return TurnResult(Outcome.IGNORED, message="No editor available.")
        text = self._editor()
        if text is None or not text.strip():
            return TurnResult(Outcome.IGNORED)
        return self._turn(text.strip())

    def _search(self, query: str) -> TurnResult:
        if not query:
            return TurnResult(Outcome.IGNORED, message="Please provide a search query.")
        if self._searcher is None:
            return TurnResult(Outcome.IGNORED, message="Search is not available.")

        try:
            with self._progress():
                result = self._searcher(query)
        except SearchError as e:
            return TurnResult(Outcome.FAILED, prompt=query, message=str(e))

        # Visible to the model on later turns, not recorded in the transcript
        self.context.append(Message(role="assistant", content=result))
        return TurnResult(Outcome.SEARCHED, prompt=query, reply=result, display=result)

    def finish(self) -> bool:
        """
        End the session and save it to history if the user said anything.

        Safe to call more than once; only the first call saves.

        Returns:
            True if the session was appended to history

        Raises:
            HistoryWriteError: If the history file could not be written
        """
        self.state = EngineState.TERMINATED
        if self._finished:
            return self._saved
        self._finished = True

        if not self.session.has_user_input():
            logger.debug(f"Session {self.session_key} has no user input; not saved")
            return False

        self.history.sessions.append(self.session)
        self.store.save(self.history)
        self._saved = True
        return True
