"""
Path utilities for owllama.
"""

from pathlib import Path


def get_owllama_dir() -> Path:
    """Get the per-user ~/.owllama directory."""
    return Path.home() / ".owllama"


def get_config_dir() -> Path:
    """Get the config directory."""
    return get_owllama_dir() / "config"


def get_prompt_history_file() -> Path:
    """Get the file that stores previously typed chat input, creating its directory."""
    path = get_owllama_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path / "prompt.hist"
