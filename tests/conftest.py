"""
Pytest fixtures for owllama tests.
"""

import json
import os
import tempfile
from pathlib import Path

import pytest

from owllama.core.history import HistoryStore
from owllama.models.chat import ChatRequest

_SETTING_VARS = (
    "OLLAMA_HOST",
    "OLLAMA_API_KEY",
    "OWLLAMA_MODEL",
    "OWLLAMA_HISTORY_FILE",
    "OWLLAMA_TIMEOUT",
    "OWLLAMA_THINK_START",
    "OWLLAMA_THINK_END",
    "OWLLAMA_REASONING_MODELS",
)


@pytest.fixture(autouse=True)
def _clean_env():
    """Prevent environment variable pollution between tests."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path, monkeypatch):
    """Keep ~/.owllama out of the real home directory and drop inherited settings."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in _SETTING_VARS:
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def history_file(temp_dir):
    return temp_dir / "owllama_chat_history.json"


@pytest.fixture
def store(history_file):
    return HistoryStore(history_file)


def _chat_body(*parts: str, role: str = "assistant") -> bytes:
    """Build a /api/chat body with one chunk per part, done on the last."""
    lines = []
    for i, part in enumerate(parts):
        lines.append(
            json.dumps(
                {
                    "message": {"role": role, "content": part},
                    "done": i == len(parts) - 1,
                }
            )
        )
    return ("\n".join(lines) + "\n").encode()


@pytest.fixture
def chat_body():
    """Factory for newline-delimited /api/chat response bodies."""
    return _chat_body


class FakeChatClient:
    """Stands in for OllamaClient; replays queued bodies or raises queued errors."""

    def __init__(self):
        self.requests: list[ChatRequest] = []
        self.responses: list = []

    def queue(self, *items):
        self.responses.extend(items)
        return self

    def chat(self, request: ChatRequest) -> bytes:
        self.requests.append(request)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, str):
            return _chat_body(item)
        return item


@pytest.fixture
def fake_client():
    return FakeChatClient()
