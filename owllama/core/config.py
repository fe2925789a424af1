"""
Configuration manager for owllama settings.

Stores encrypted configuration in ~/.owllama/config/. Environment variables
with the same name take precedence over stored values.
"""

import getpass
import json
import os
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken
from pydantic import BaseModel
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from owllama.core.history import DEFAULT_HISTORY_FILE
from owllama.core.thinking import (
    DEFAULT_REASONING_MODELS,
    DEFAULT_THINK_END,
    DEFAULT_THINK_START,
    ThinkFilter,
)
from owllama.utils.paths import get_config_dir

console = Console()

OLLAMA_HOST = "OLLAMA_HOST"
OLLAMA_API_KEY = "OLLAMA_API_KEY"
OWLLAMA_MODEL = "OWLLAMA_MODEL"
OWLLAMA_HISTORY_FILE = "OWLLAMA_HISTORY_FILE"
OWLLAMA_TIMEOUT = "OWLLAMA_TIMEOUT"
OWLLAMA_THINK_START = "OWLLAMA_THINK_START"
OWLLAMA_THINK_END = "OWLLAMA_THINK_END"
OWLLAMA_REASONING_MODELS = "OWLLAMA_REASONING_MODELS"

DEFAULT_HOST = "http://localhost:11434"
DEFAULT_MODEL = "gemma3"
DEFAULT_TIMEOUT = 300.0

KNOWN_SETTINGS = {
    OLLAMA_HOST: f"Inference server URL (default: {DEFAULT_HOST})",
    OLLAMA_API_KEY: "Bearer token for servers behind an auth proxy",
    OWLLAMA_MODEL: f"Default chat model (default: {DEFAULT_MODEL})",
    OWLLAMA_HISTORY_FILE: f"Chat history file (default: {DEFAULT_HISTORY_FILE})",
    OWLLAMA_TIMEOUT: f"Read timeout in seconds (default: {DEFAULT_TIMEOUT:g})",
    OWLLAMA_THINK_START: f"Reasoning block start marker (default: {DEFAULT_THINK_START})",
    OWLLAMA_THINK_END: f"Reasoning block end marker (default: {DEFAULT_THINK_END})",
    OWLLAMA_REASONING_MODELS: "Comma-separated model name markers that emit reasoning "
    f"(default: {','.join(DEFAULT_REASONING_MODELS)})",
}

# Values that are never echoed back
SECRET_SETTINGS = {OLLAMA_API_KEY}


class ConfigManager:
    """
    Manages owllama configuration.

    Directory structure:
        ~/.owllama/config/.key     # Encryption key
        ~/.owllama/config/keys.enc # Encrypted settings
    """

    def __init__(self, base_dir: Path | None = None):
        """
        Initialize the config manager.

        Args:
            base_dir: Base directory for config storage.
                      Defaults to ~/.owllama/config/
        """
        if base_dir is None:
            base_dir = get_config_dir()

        self.base_dir = base_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._fernet = self._get_fernet()
        self._cache: dict[str, str] | None = None

    def _get_fernet(self) -> Fernet:
        """Get or create the encryption key."""
        key_file = self.base_dir / ".key"

        if key_file.exists():
            key = key_file.read_bytes()
        else:
            key = Fernet.generate_key()
            key_file.write_bytes(key)
            try:
                key_file.chmod(0o600)
            except OSError:
                pass

        return Fernet(key)

    def _keys_path(self) -> Path:
        return self.base_dir / "keys.enc"

    def _load_keys(self) -> dict[str, str]:
        """Load and decrypt stored settings."""
        if self._cache is not None:
            return self._cache

        path = self._keys_path()
        if not path.exists():
            self._cache = {}
            return {}

        try:
            decrypted = self._fernet.decrypt(path.read_bytes())
            keys = json.loads(decrypted)
            self._cache = keys
            return keys
        except (InvalidToken, json.JSONDecodeError):
            self._cache = {}
            return {}

    def _save_keys(self, keys: dict[str, str]) -> None:
        """Encrypt and save settings."""
        encrypted = self._fernet.encrypt(json.dumps(keys).encode())
        path = self._keys_path()
        path.write_bytes(encrypted)
        try:
            path.chmod(0o600)
        except OSError:
            pass
        self._cache = keys

    def get(self, name: str) -> str | None:
        """
        Get a config value.

        Checks environment first, then stored config.
        """
        if name in os.environ:
            return os.environ[name]
        return self._load_keys().get(name)

    def set(self, name: str, value: str) -> None:
        keys = self._load_keys()
        keys[name] = value
        self._save_keys(keys)

    def delete(self, name: str) -> bool:
        """
        Delete a stored setting.

        Returns:
            True if deleted, False if not found
        """
        keys = self._load_keys()
        if name in keys:
            del keys[name]
            self._save_keys(keys)
            return True
        return False

    def list_keys(self) -> list[str]:
        """List all stored setting names."""
        return list(self._load_keys().keys())

    def set_interactive(self, name: str | None = None) -> bool:
        """
        Interactively prompt the user to set a value.

        Args:
            name: Setting name, or None to show a menu of known settings

        Returns:
            True if a value was set
        """
        if name is None:
            console.print()
            console.print("[bold]Settings:[/bold]")
            console.print()

            items = list(KNOWN_SETTINGS.items())
            for i, (key, desc) in enumerate(items, 1):
                status = "[green]✓[/green]" if self.get(key) else "[dim]○[/dim]"
                console.print(f"  {status} [{i}] {key}")
                console.print(f"      [dim]{desc}[/dim]")

            console.print()
            choice = input("Select setting (number or name): ").strip()

            if choice.isdigit():
                idx = int(choice) - 1
                if 0 <= idx < len(items):
                    name = items[idx][0]
                else:
                    console.print("[red]Invalid selection[/red]")
                    return False
            elif choice:
                name = choice.upper()
            else:
                return False

        description = KNOWN_SETTINGS.get(name, "Custom setting")
        console.print()
        console.print(
            Panel(f"[bold]{name}[/bold]\n{description}", title="Set value", border_style="blue")
        )

        if name in SECRET_SETTINGS:
            value = getpass.getpass("Enter value (or press Enter to cancel): ")
        else:
            value = input("Enter value (or press Enter to cancel): ").strip()

        if not value:
            console.print("[dim]Cancelled[/dim]")
            return False

        self.set(name, value)
        console.print(f"[green]✓[/green] Saved {name}")
        return True

    def show_status(self) -> None:
        """Display stored settings."""
        keys = self._load_keys()

        if not keys:
            console.print("[dim]No settings configured[/dim]")
            console.print()
            console.print("Run [cyan]owllama config set[/cyan] to add one")
            return

        table = Table(title="Configured Settings")
        table.add_column("Name", style="cyan")
        table.add_column("Value")
        table.add_column("Status")

        for name in sorted(keys.keys()):
            value = "********" if name in SECRET_SETTINGS else keys[name]
            if name in os.environ and os.environ[name] != keys[name]:
                status = "[yellow]env override[/yellow]"
            else:
                status = "[green]stored[/green]"
            table.add_row(name, value, status)

        console.print(table)
        console.print()
        console.print(f"[dim]Config location: {self.base_dir}[/dim]")


class Settings(BaseModel):
    """Resolved runtime settings."""

    host: str = DEFAULT_HOST
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    history_file: Path = Path(DEFAULT_HISTORY_FILE)
    timeout: float = DEFAULT_TIMEOUT
    think_start: str = DEFAULT_THINK_START
    think_end: str = DEFAULT_THINK_END
    reasoning_models: tuple[str, ...] = DEFAULT_REASONING_MODELS

    def think_filter(self) -> ThinkFilter:
        return ThinkFilter(
            start=self.think_start,
            end=self.think_end,
            model_markers=self.reasoning_models,
        )


def load_settings(config_mgr: ConfigManager | None = None) -> Settings:
    """
    Resolve settings from the environment and the config store.

    Unset or empty values fall back to the defaults.
    """
    mgr = config_mgr or ConfigManager()
    values: dict[str, object] = {}

    mapping = {
        OLLAMA_HOST: "host",
        OLLAMA_API_KEY: "api_key",
        OWLLAMA_MODEL: "model",
        OWLLAMA_HISTORY_FILE: "history_file",
        OWLLAMA_TIMEOUT: "timeout",
        OWLLAMA_THINK_START: "think_start",
        OWLLAMA_THINK_END: "think_end",
    }
    for key, field in mapping.items():
        value = mgr.get(key)
        if value:
            values[field] = value

    markers = mgr.get(OWLLAMA_REASONING_MODELS)
    if markers:
        values["reasoning_models"] = tuple(m.strip() for m in markers.split(",") if m.strip())

    return Settings(**values)
