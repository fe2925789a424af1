"""
History store for finished chat sessions.

All sessions live in a single pretty-printed JSON document:

    {"sessions": [{"session_key": "...", "messages": [{"role": ..., "content": ...}]}]}
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from owllama.core.errors import HistoryWriteError
from owllama.models.chat import History, Message

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_FILE = "owllama_chat_history.json"
SUMMARY_WIDTH = 40


class HistoryStore:
    """
    Loads and saves the chat history file.

    The file is read once when a chat starts and rewritten once when it ends.
    """

    def __init__(self, path: Path | str | None = None):
        """
        Initialize the history store.

        Args:
            path: History file location (default: ./owllama_chat_history.json)
        """
        self.path = Path(path) if path is not None else Path(DEFAULT_HISTORY_FILE)
        # Set when an existing non-empty file could not be read back
        self._discarded = False

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + ".bak")

    def load(self) -> History:
        """
        Load the saved history.

        A missing, unreadable or invalid file yields an empty history. An
        unreadable file is moved to ``backup_path`` on the next save rather
        than overwritten.
        """
        self._discarded = False
        if not self.path.exists():
            return History()

        try:
            raw = self.path.read_bytes()
        except OSError as e:
            logger.warning(f"Could not read history file {self.path}: {e}")
            self._discarded = True
            return History()

        if not raw.strip():
            return History()

        try:
            # Bytes go straight to pydantic so bad UTF-8 is a ValidationError too
            return History.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid history file {self.path}: {e.error_count()} error(s)")
            self._discarded = True
            return History()

    def save(self, history: History) -> None:
        """
        Replace the history file with ``history``.

        The document is written to a temporary file next to the target and
        moved into place. If the last ``load`` could not read the existing
        file, that file is first moved to ``backup_path``.

        Raises:
            HistoryWriteError: If the file could not be written
        """
        payload = history.model_dump_json(indent=2) + "\n"
        directory = self.path.parent

        tmp_name: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            if self._discarded and self.path.exists():
                os.replace(self.path, self.backup_path)
                logger.warning(f"Moved unreadable history file to {self.backup_path}")
            self._discarded = False
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise HistoryWriteError(f"Error writing to history file {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

        logger.debug(f"Saved {len(history.sessions)} session(s) to {self.path}")


def list_summaries(history: History, width: int = SUMMARY_WIDTH) -> list[tuple[str, str]]:
    """
    Summarize each session as (session_key, first user message prefix).

    The prefix is the first ``width`` characters of the first user message.
    """
    return [
        (session.session_key, session.first_user_message()[:width])
        for session in history.sessions
    ]


def view_session(history: History, session_key: str) -> list[Message] | None:
    """
    Get the messages of a saved session.

    Returns:
        The session's messages in order, or None if no session has that key
    """
    session = history.find(session_key)
    if session is None:
        return None
    return list(session.messages)
