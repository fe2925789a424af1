"""
Tests for ConfigManager and settings resolution.
"""

from pathlib import Path
from unittest.mock import patch

from owllama.core.config import (
    DEFAULT_HOST,
    DEFAULT_MODEL,
    OLLAMA_HOST,
    OWLLAMA_HISTORY_FILE,
    OWLLAMA_MODEL,
    OWLLAMA_REASONING_MODELS,
    OWLLAMA_THINK_END,
    OWLLAMA_THINK_START,
    OWLLAMA_TIMEOUT,
    ConfigManager,
    load_settings,
)
from owllama.core.history import DEFAULT_HISTORY_FILE


class TestConfigManager:
    """Tests for the encrypted settings store."""

    def test_creates_directory_and_key(self, temp_dir):
        base = temp_dir / "config"
        ConfigManager(base_dir=base)
        assert base.is_dir()
        assert (base / ".key").exists()

    def test_defaults_to_home(self, _isolated_home):
        mgr = ConfigManager()
        assert mgr.base_dir == _isolated_home / ".owllama" / "config"

    def test_set_get_delete(self, temp_dir):
        mgr = ConfigManager(base_dir=temp_dir)
        mgr.set(OWLLAMA_MODEL, "qwen3:8b")
        assert mgr.get(OWLLAMA_MODEL) == "qwen3:8b"
        assert mgr.list_keys() == [OWLLAMA_MODEL]
        assert mgr.delete(OWLLAMA_MODEL) is True
        assert mgr.delete(OWLLAMA_MODEL) is False
        assert mgr.get(OWLLAMA_MODEL) is None

    def test_persists_across_instances(self, temp_dir):
        ConfigManager(base_dir=temp_dir).set(OLLAMA_HOST, "http://box:11434")
        assert ConfigManager(base_dir=temp_dir).get(OLLAMA_HOST) == "http://box:11434"

    def test_values_are_encrypted(self, temp_dir):
        ConfigManager(base_dir=temp_dir).set(OLLAMA_HOST, "http://box:11434")
        assert b"box" not in (temp_dir / "keys.enc").read_bytes()

    def test_environment_takes_precedence(self, temp_dir, monkeypatch):
        mgr = ConfigManager(base_dir=temp_dir)
        mgr.set(OWLLAMA_MODEL, "stored")
        monkeypatch.setenv(OWLLAMA_MODEL, "from-env")
        assert mgr.get(OWLLAMA_MODEL) == "from-env"

    def test_corrupt_store_reads_empty(self, temp_dir):
        ConfigManager(base_dir=temp_dir)
        (temp_dir / "keys.enc").write_bytes(b"not a token")
        assert ConfigManager(base_dir=temp_dir).list_keys() == []

    def test_set_interactive_by_number(self, temp_dir):
        mgr = ConfigManager(base_dir=temp_dir)
        with patch("builtins.input", side_effect=["3", "llama3.2"]):
            assert mgr.set_interactive() is True
        assert mgr.get(OWLLAMA_MODEL) == "llama3.2"

    def test_set_interactive_cancelled(self, temp_dir):
        mgr = ConfigManager(base_dir=temp_dir)
        with patch("builtins.input", return_value=""):
            assert mgr.set_interactive(OLLAMA_HOST) is False
        assert mgr.list_keys() == []


class TestLoadSettings:
    def test_defaults(self, temp_dir):
        settings = load_settings(ConfigManager(base_dir=temp_dir))
        assert settings.host == DEFAULT_HOST
        assert settings.model == DEFAULT_MODEL
        assert settings.api_key is None
        assert settings.history_file == Path(DEFAULT_HISTORY_FILE)
        assert settings.think_filter().start == "<think>"

    def test_stored_and_env_values(self, temp_dir, monkeypatch):
        mgr = ConfigManager(base_dir=temp_dir)
        mgr.set(OWLLAMA_HISTORY_FILE, "/tmp/chats.json")
        mgr.set(OWLLAMA_TIMEOUT, "42")
        monkeypatch.setenv(OLLAMA_HOST, "http://env-host:1234")

        settings = load_settings(mgr)
        assert settings.host == "http://env-host:1234"
        assert settings.history_file == Path("/tmp/chats.json")
        assert settings.timeout == 42.0

    def test_think_markers(self, temp_dir, monkeypatch):
        monkeypatch.setenv(OWLLAMA_THINK_START, "<|im_thoughts|>")
        monkeypatch.setenv(OWLLAMA_THINK_END, "</|im_thoughts|>")
        monkeypatch.setenv(OWLLAMA_REASONING_MODELS, "qwen3, deepseek-r1 ,")

        f = load_settings(ConfigManager(base_dir=temp_dir)).think_filter()
        assert f.model_markers == ("qwen3", "deepseek-r1")
        assert f("deepseek-r1:7b", "<|im_thoughts|>x</|im_thoughts|>y") == "y"

    def test_empty_values_use_defaults(self, temp_dir, monkeypatch):
        monkeypatch.setenv(OWLLAMA_MODEL, "")
        assert load_settings(ConfigManager(base_dir=temp_dir)).model == DEFAULT_MODEL
