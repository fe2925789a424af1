"""
UI components for the owllama CLI.

Provides enhanced input (prompt_toolkit) and output (Rich Markdown rendering)
for the interactive chat command.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from contextlib import AbstractContextManager

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.prompt import Prompt

from owllama.utils.paths import get_prompt_history_file

# ---------------------------------------------------------------------------
# Slash command definitions (command -> description)
# ---------------------------------------------------------------------------

SLASH_COMMANDS: dict[str, str] = {
    "/edit": "Compose the next message in $EDITOR",
    "/search": "Look up a topic on Wikipedia and add it to the context",
    "/clear": "Reset the conversation context",
    "/exit": "Exit the chat",
}

# Aliases that resolve to the same handler, listed for completion
_SLASH_ALIASES: dict[str, str] = {
    "/vi": "Compose the next message in $EDITOR",
}

# ---------------------------------------------------------------------------
# prompt_toolkit components (lazy imports to avoid hard crash if missing)
# ---------------------------------------------------------------------------


def _get_prompt_toolkit():
    """Import prompt_toolkit components. Returns None if unavailable."""
    try:
        from prompt_toolkit import PromptSession
        from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
        from prompt_toolkit.completion import Completion
        from prompt_toolkit.history import FileHistory
        from prompt_toolkit.styles import Style

        return {
            "PromptSession": PromptSession,
            "AutoSuggestFromHistory": AutoSuggestFromHistory,
            "Completion": Completion,
            "FileHistory": FileHistory,
            "Style": Style,
        }
    except ImportError:
        return None


class ChatCompleter:
    """Completes slash command names, with their descriptions, at the start of input."""

    def __init__(self):
        pt = _get_prompt_toolkit()
        if pt is None:
            raise ImportError("prompt_toolkit is required for ChatCompleter")
        self._Completion = pt["Completion"]

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/") or " " in text:
            return

        all_commands = {**SLASH_COMMANDS, **_SLASH_ALIASES}
        for cmd, desc in all_commands.items():
            if cmd.startswith(text):
                yield self._Completion(cmd, start_position=-len(text), display_meta=desc)


class ChatLexer:
    """Syntax highlighting for chat input: /commands green."""

    def lex_document(self, document):
        def get_line(lineno):
            line = document.lines[lineno]
            if line.startswith("/"):
                parts = line.split(" ", 1)
                result = [("class:slash-command", parts[0])]
                if len(parts) > 1:
                    result.append(("", " " + parts[1]))
                return result
            return [("", line)]

        return get_line


CHAT_STYLE_DICT = {
    "prompt": "bold #00afaf",
    "slash-command": "#00cc00 bold",
    "": "",
    "completion-menu.completion": "bg:#1a1a2e #cccccc",
    "completion-menu.completion.current": "bg:#16213e #ffffff",
    "completion-menu.meta.completion": "bg:#1a1a2e #666688",
    "completion-menu.meta.completion.current": "bg:#16213e #aaaacc",
    "auto-suggest": "#444466",
}


def create_chat_session():
    """
    Create a prompt_toolkit PromptSession for the chat command.

    Returns None if not in a real terminal (e.g. under CliRunner in tests)
    or if prompt_toolkit is not available.
    """
    if not sys.stdin.isatty():
        return None

    pt = _get_prompt_toolkit()
    if pt is None:
        return None

    try:
        return pt["PromptSession"](
            completer=ChatCompleter(),
            lexer=ChatLexer(),
            style=pt["Style"].from_dict(CHAT_STYLE_DICT),
            history=pt["FileHistory"](str(get_prompt_history_file())),
            auto_suggest=pt["AutoSuggestFromHistory"](),
            enable_history_search=True,
            complete_while_typing=False,
            multiline=False,
        )
    except Exception:
        return None


def read_input(console: Console, prompt_session=None) -> str:
    """
    Read one line of chat input.

    Raises:
        EOFError: When input is exhausted
    """
    if prompt_session is not None:
        return prompt_session.prompt([("class:prompt", "You: ")])
    return console.input("[bold cyan]You: [/bold cyan]")


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def render_message(console: Console, label: str, text: str, style: str = "bold green"):
    """Print a speaker label followed by the text rendered as Markdown."""
    console.print(f"[{style}]{label}:[/{style}]")
    if text.strip():
        console.print(Markdown(text))
    else:
        console.print("[dim](empty response)[/dim]")


def thinking_indicator(console: Console, label: str = "Thinking...") -> Callable[[], AbstractContextManager]:
    """
    Build a progress factory for ChatEngine.

    Each call returns a Rich status spinner. Leaving the context stops the
    refresh thread and clears the spinner line, also when an exception is raised.
    """

    def factory() -> AbstractContextManager:
        return console.status(f"[dim]{label}[/dim]", spinner="dots")

    return factory


def open_editor() -> str | None:
    """Open $EDITOR (or vi) on an empty Markdown buffer and return what was written."""
    try:
        return click.edit("", extension=".md", require_save=True)
    except click.ClickException as e:
        Console(stderr=True).print(f"[red]Editor error:[/red] {e.format_message()}")
        return None


# ---------------------------------------------------------------------------
# Guided prompt builder
# ---------------------------------------------------------------------------

GUIDED_STEPS = [
    (
        "Step 1: Who should the AI act as? (Role/Persona)",
        "Expert Chef",
        "Enter a role/persona",
    ),
    (
        "Step 2: What do you want the AI to do? (Task)",
        "Suggest a three-course vegetarian meal",
        "Enter a task",
    ),
    (
        "Step 3: Any relevant context, constraints, or details?",
        "Considering a Mediterranean diet, with a focus on fresh herbs and olive oil",
        "Enter context/details",
    ),
    (
        "Step 4: How should the answer be presented? (Format/Output Request)",
        "Provide the recipes in a clear, step-by-step format with estimated prep and cook times.",
        "Enter format/output request",
    ),
]


def build_guided_prompt(console: Console) -> str:
    """
    Walk the user through composing a structured first prompt.

    The four answers are joined with " - ". Answering "edit" at the
    confirmation step starts over.
    """
    console.print(
        "\n[bold]Welcome to Owllama Chat![/bold]\n"
        "Let's build your first prompt step by step for best results."
    )

    while True:
        answers = []
        for title, example, ask in GUIDED_STEPS:
            console.print(f"\n{title}")
            console.print(f"[dim]Example: {example}[/dim]")
            answers.append(Prompt.ask(ask, console=console, default="", show_default=False).strip())

        full_prompt = " - ".join(answers)
        console.print("\n[bold]Your full prompt:[/bold]")
        console.print(full_prompt, markup=False, highlight=False)

        confirm = Prompt.ask(
            "\nPress Enter to continue or type 'edit' to start over",
            console=console,
            default="",
            show_default=False,
        )
        if confirm.strip().lower() != "edit":
            return full_prompt
        console.print("Restarting prompt setup...")
