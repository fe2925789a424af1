"""
Tests for chat models and the history store.
"""

import json
import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from owllama.core.errors import HistoryWriteError
from owllama.core.history import (
    DEFAULT_HISTORY_FILE,
    SUMMARY_WIDTH,
    HistoryStore,
    list_summaries,
    view_session,
)
from owllama.models.chat import History, Message, Session


def _session(key: str, *pairs: tuple[str, str]) -> Session:
    messages = []
    for prompt, reply in pairs:
        messages.append(Message(role="user", content=prompt))
        messages.append(Message(role="assistant", content=reply))
    return Session(session_key=key, messages=messages)


class TestModels:
    """Tests for Message, Session and History."""

    def test_message_is_frozen(self):
        msg = Message(role="user", content="hi")
        with pytest.raises(ValidationError):
            msg.content = "changed"

    def test_legacy_role_reads_as_assistant(self):
        msg = Message.model_validate({"role": "ollama", "content": "old reply"})
        assert msg.role == "assistant"

    def test_other_roles_are_kept(self):
        msg = Message.model_validate({"role": "system", "content": "be brief"})
        assert msg.role == "system"

    def test_null_lists_load_empty(self):
        history = History.model_validate_json(
            '{"sessions": [{"session_key": "abc", "messages": null}]}'
        )
        assert history.sessions[0].messages == []
        assert History.model_validate_json('{"sessions": null}').sessions == []

    def test_has_user_input(self):
        assert _session("a", ("hello", "hi")).has_user_input()
        assert not Session(session_key="b").has_user_input()
        blank = Session(session_key="c", messages=[Message(role="user", content="   ")])
        assert not blank.has_user_input()


class TestHistoryStoreLoad:
    def test_default_path(self):
        assert HistoryStore().path.name == DEFAULT_HISTORY_FILE

    def test_missing_file(self, store):
        assert store.load().sessions == []

    def test_empty_file(self, store, history_file):
        history_file.write_text("")
        assert store.load().sessions == []

    def test_corrupt_file(self, store, history_file):
        history_file.write_text("{ this is not json")
        assert store.load().sessions == []

    def test_wrong_shape(self, store, history_file):
        history_file.write_text(json.dumps({"sessions": [{"messages": []}]}))
        assert store.load().sessions == []

    def test_invalid_utf8(self, store, history_file):
        history_file.write_bytes(b'{"sessions": [\xff\xfe]}')
        assert store.load().sessions == []

    def test_sessions_with_other_roles_survive_rewrite(self, store, history_file):
        history_file.write_text(
            json.dumps(
                {
                    "sessions": [
                        {"session_key": "aaaa", "messages": [{"role": "user", "content": "hi"}]},
                        {"session_key": "bbbb", "messages": [{"role": "system", "content": "x"}]},
                    ]
                }
            )
        )
        history = store.load()
        history.sessions.append(_session("cccc", ("q", "a")))
        store.save(history)

        loaded = store.load()
        assert [s.session_key for s in loaded.sessions] == ["aaaa", "bbbb", "cccc"]
        assert loaded.sessions[1].messages[0].role == "system"

    def test_reads_legacy_file(self, store, history_file):
        history_file.write_text(
            json.dumps(
                {
                    "sessions": [
                        {
                            "session_key": "1a2b3c4d",
                            "messages": [
                                {"role": "user", "content": "Hi"},
                                {"role": "ollama", "content": "Hello!"},
                            ],
                        }
                    ]
                },
                indent=2,
            )
        )
        history = store.load()
        assert [m.role for m in history.sessions[0].messages] == ["user", "assistant"]


class TestHistoryStoreSave:
    def test_round_trip(self, store):
        history = History(
            sessions=[
                _session("aaaa1111", ("first", "one")),
                _session("bbbb2222", ("second", "two"), ("again", "three")),
            ]
        )
        store.save(history)
        store.save(store.load())

        loaded = store.load()
        assert loaded == history
        assert [s.session_key for s in loaded.sessions] == ["aaaa1111", "bbbb2222"]

    def test_appending_preserves_earlier_sessions(self, store):
        store.save(History(sessions=[_session("old", ("a", "b"))]))

        history = store.load()
        history.sessions.append(_session("new", ("c", "d")))
        store.save(history)

        loaded = store.load()
        assert [s.session_key for s in loaded.sessions] == ["old", "new"]
        assert loaded.sessions[0] == _session("old", ("a", "b"))

    def test_file_format(self, store, history_file):
        store.save(History(sessions=[_session("k", ("q", "a"))]))

        raw = history_file.read_text()
        assert raw.endswith("\n")
        assert '\n  "sessions": [' in raw
        data = json.loads(raw)
        assert data == {
            "sessions": [
                {
                    "session_key": "k",
                    "messages": [
                        {"role": "user", "content": "q"},
                        {"role": "assistant", "content": "a"},
                    ],
                }
            ]
        }

    def test_overwrites_existing_file(self, store, history_file):
        history_file.write_text("garbage" * 100)
        store.save(History())
        assert json.loads(history_file.read_text()) == {"sessions": []}

    def test_unreadable_file_is_backed_up(self, store, history_file):
        original = b'{"sessions": [\xff\xfe]}'
        history_file.write_bytes(original)

        history = store.load()
        history.sessions.append(_session("new", ("q", "a")))
        store.save(history)

        assert store.backup_path.read_bytes() == original
        assert [s.session_key for s in store.load().sessions] == ["new"]

    def test_backup_only_once(self, store, history_file):
        history_file.write_text("{ not json")
        store.save(store.load())
        store.save(History(sessions=[_session("k", ("q", "a"))]))
        assert store.backup_path.read_text() == "{ not json"

    def test_no_temp_files_left(self, store, history_file):
        store.save(History(sessions=[_session("k", ("q", "a"))]))
        assert os.listdir(history_file.parent) == [history_file.name]

    def test_creates_parent_directory(self, temp_dir):
        store = HistoryStore(temp_dir / "nested" / "dir" / "history.json")
        store.save(History())
        assert store.path.exists()

    def test_write_failure_raises(self, store):
        with patch("owllama.core.history.os.replace", side_effect=PermissionError("denied")):
            with pytest.raises(HistoryWriteError):
                store.save(History())
        assert not store.path.exists()


class TestListSummaries:
    def test_summaries(self):
        history = History(
            sessions=[
                _session("k1", ("short", "x")),
                Session(session_key="k2"),
            ]
        )
        assert list_summaries(history) == [("k1", "short"), ("k2", "")]

    def test_truncation_is_exact(self):
        long_text = "x" * (SUMMARY_WIDTH + 25)
        at_bound = "y" * SUMMARY_WIDTH
        history = History(
            sessions=[_session("long", (long_text, "r")), _session("edge", (at_bound, "r"))]
        )
        summaries = dict(list_summaries(history))
        assert summaries["long"] == "x" * SUMMARY_WIDTH
        assert summaries["edge"] == at_bound

    def test_truncates_by_characters(self):
        text = "é" * 50
        [(_, summary)] = list_summaries(History(sessions=[_session("k", (text, "r"))]))
        assert summary == "é" * SUMMARY_WIDTH

    def test_uses_first_user_message(self):
        session = Session(
            session_key="k",
            messages=[
                Message(role="assistant", content="search result"),
                Message(role="user", content="the question"),
            ],
        )
        assert list_summaries(History(sessions=[session])) == [("k", "the question")]


class TestViewSession:
    def test_found(self):
        session = _session("k", ("q", "a"))
        messages = view_session(History(sessions=[session]), "k")
        assert messages == session.messages

    def test_not_found_is_none(self):
        assert view_session(History(sessions=[_session("k", ("q", "a"))]), "other") is None

    def test_found_but_empty(self):
        messages = view_session(History(sessions=[Session(session_key="k")]), "k")
        assert messages == []
        assert messages is not None

    def test_exact_match_only(self):
        history = History(sessions=[_session("abcd1234", ("q", "a"))])
        assert view_session(history, "abcd") is None
