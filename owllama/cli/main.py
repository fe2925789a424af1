"""
CLI entry point for owllama: chat with a local Ollama server.
"""

import sys

import click
from rich.console import Console
from rich.markup import escape

try:
    from importlib.metadata import version as pkg_version

    _version = pkg_version("owllama")
except Exception:
    _version = "0.3.0"

from owllama.cli.ui import (
    build_guided_prompt,
    create_chat_session,
    open_editor,
    read_input,
    render_message,
    thinking_indicator,
)
from owllama.core.chat import ChatEngine, EngineState, Outcome, TurnResult
from owllama.core.client import OllamaClient
from owllama.core.config import ConfigManager, Settings, load_settings
from owllama.core.errors import ExecutableNotFoundError, HistoryWriteError, InferenceError
from owllama.core.forward import forward_to_ollama
from owllama.core.history import HistoryStore, list_summaries, view_session
from owllama.core.search import search_wikipedia

console = Console()
console_err = Console(stderr=True)

FORWARD_COMMAND = "forward"


def _settings() -> Settings:
    return load_settings(ConfigManager())


def _make_client(settings: Settings) -> OllamaClient:
    return OllamaClient.from_settings(settings)


# =============================================================================
# Root CLI Group
# =============================================================================


class ForwardingGroup(click.Group):
    """Command group that hands unknown subcommands to the ollama executable."""

    def resolve_command(self, ctx, args):
        # The hidden forward command is never reached by name, so a typed
        # "forward" goes to ollama with the rest of the arguments.
        if args and not args[0].startswith("-"):
            name = args[0]
            if name == FORWARD_COMMAND or self.get_command(ctx, name) is None:
                return FORWARD_COMMAND, self.get_command(ctx, FORWARD_COMMAND), list(args)
        return super().resolve_command(ctx, args)


@click.group(cls=ForwardingGroup, invoke_without_command=True)
@click.version_option(version=_version, prog_name="owllama")
@click.option("--debug", is_flag=True, hidden=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, debug: bool):
    """
    Owllama: chat with a local Ollama server.

    Unknown commands are passed through to the ollama executable.

    \b
        owllama list                       # List local models
        owllama generate gemma3 "Hi"       # One-shot completion
        owllama chat qwen3                 # Interactive chat
        owllama history list               # Saved chat sessions
        owllama pull gemma3                # Passed through to ollama
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if debug:
        import logging

        logging.basicConfig(level=logging.DEBUG, format="[%(levelname)s] %(name)s: %(message)s")
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(1)


@cli.command(
    FORWARD_COMMAND,
    hidden=True,
    add_help_option=False,
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def forward(args: tuple[str, ...]):
    """Run the ollama executable with the given arguments."""
    try:
        code = forward_to_ollama(args)
    except ExecutableNotFoundError as e:
        console_err.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except OSError as e:
        console_err.print(f"[red]Error running ollama:[/red] {e}")
        sys.exit(1)
    sys.exit(code)


@cli.command("help")
@click.pass_context
def help_command(ctx: click.Context):
    """Show this message."""
    click.echo(ctx.parent.get_help())


# =============================================================================
# One-shot Commands
# =============================================================================


@cli.command("list")
def list_models():
    """List models available on the server."""
    try:
        with _make_client(_settings()) as client:
            names = client.list_models()
    except InferenceError as e:
        console_err.print(f"[red]Error listing models:[/red] {escape(str(e))}")
        sys.exit(1)

    for name in names:
        click.echo(name)


@cli.command()
@click.argument("model")
@click.argument("prompt")
def generate(model: str, prompt: str):
    """
    Generate a single completion.

    \b
    Examples:
        owllama generate gemma3 "Why is the sky blue?"
    """
    try:
        with _make_client(_settings()) as client:
            with console_err.status("[dim]Generating...[/dim]", spinner="dots"):
                text = client.generate(model, prompt)
    except InferenceError as e:
        console_err.print(f"[red]Error generating response:[/red] {escape(str(e))}")
        sys.exit(1)

    click.echo(text)


@cli.command()
def version():
    """Show the server version."""
    try:
        with _make_client(_settings()) as client:
            server_version = client.version()
    except InferenceError as e:
        console_err.print(f"[red]Error getting version:[/red] {escape(str(e))}")
        sys.exit(1)

    click.echo(server_version)


# =============================================================================
# Chat
# =============================================================================


def _show_result(result: TurnResult) -> None:
    """Print the outcome of one line of chat input."""
    if result.outcome is Outcome.REPLIED:
        render_message(console, "You", result.prompt or "", style="bold cyan")
        render_message(console, "Ollama", result.display or "", style="bold green")
    elif result.outcome is Outcome.SEARCHED:
        console.print(f"[dim]Searched the internet for:[/dim] {escape(result.prompt or '')}")
        console.print("[bold]Search result:[/bold]", escape(result.display or ""))
    elif result.outcome is Outcome.FAILED:
        console_err.print(f"[red]Error:[/red] {escape(result.message or '')}")
    elif result.message:
        style = "yellow" if result.outcome is Outcome.IGNORED else "dim"
        console.print(f"[{style}]{escape(result.message)}[/{style}]")


def _finish(engine: ChatEngine) -> None:
    try:
        saved = engine.finish()
    except HistoryWriteError as e:
        console_err.print(f"[red]Error:[/red] {escape(str(e))}")
        return
    if saved:
        console.print(f"[dim]Saved session {engine.session_key}[/dim]")


@cli.command()
@click.argument("model", required=False)
@click.option("--guided", is_flag=True, help="Build the first prompt step by step")
def chat(model: str | None, guided: bool):
    """
    Start an interactive chat session.

    MODEL defaults to OWLLAMA_MODEL, or gemma3.

    \b
    In-chat commands:
        /exit             Quit and save the session
        /clear            Reset the conversation context
        /edit, /vi        Compose a message in $EDITOR
        /search <query>   Add a Wikipedia summary to the context
    """
    settings = _settings()
    model = model or settings.model

    with _make_client(settings) as client:
        engine = ChatEngine(
            model,
            client,
            HistoryStore(settings.history_file),
            think_filter=settings.think_filter(),
            progress=thinking_indicator(console),
            editor=open_editor,
            searcher=search_wikipedia,
        )
        prompt_session = create_chat_session()
        console.print(f"[dim]Session {engine.session_key} · {escape(model)}[/dim]")

        try:
            if guided:
                try:
                    first_prompt = build_guided_prompt(console)
                except (EOFError, KeyboardInterrupt):
                    console.print("\nExiting chat session.")
                    return
                _show_result(engine.submit(first_prompt))

            console.print("\nType /exit to quit. Type /clear to reset context.")
            while engine.state is not EngineState.TERMINATED:
                try:
                    text = read_input(console, prompt_session)
                except (EOFError, KeyboardInterrupt):
                    console.print("\nExiting chat session.")
                    break
                _show_result(engine.submit(text))
        finally:
            _finish(engine)


# =============================================================================
# History
# =============================================================================


@cli.group("history")
def history_group():
    """Browse saved chat sessions."""
    pass


@history_group.command("list")
def history_list():
    """List saved sessions with the start of their first message."""
    history = HistoryStore(_settings().history_file).load()
    if not history.sessions:
        console.print("[dim]No saved sessions[/dim]")
        return

    for key, summary in list_summaries(history):
        click.echo(f"{key}: {summary}")


@history_group.command("view")
@click.argument("key")
def history_view(key: str):
    """Print every message of a saved session."""
    history = HistoryStore(_settings().history_file).load()
    messages = view_session(history, key)
    if messages is None:
        click.echo("Session not found.")
        return

    for msg in messages:
        click.echo(f"{msg.role.capitalize()}: {msg.content}")


# =============================================================================
# Config Commands
# =============================================================================


@cli.group()
def config():
    """Manage owllama settings."""
    pass


@config.command("set")
@click.argument("key_name", required=False)
@click.option(
    "--value",
    "-v",
    help="Set value directly (visible in shell history)",
)
def config_set(key_name: str | None, value: str | None):
    """
    Set a setting.

    If KEY_NAME is not provided, shows an interactive menu of known settings.

    \b
    Examples:
        owllama config set                                  # Interactive menu
        owllama config set OLLAMA_HOST                      # Prompt for value
        owllama config set OWLLAMA_MODEL -v qwen3:8b        # Set directly
    """
    config_mgr = ConfigManager()

    if value:
        if not key_name:
            console.print("[red]Error:[/red] KEY_NAME required when using --value")
            sys.exit(1)
        config_mgr.set(key_name, value)
        console.print(f"[green]✓[/green] Saved {key_name}")
    else:
        config_mgr.set_interactive(key_name)


@config.command("list")
def config_list():
    """List stored settings."""
    ConfigManager().show_status()


@config.command("delete")
@click.argument("key_name")
def config_delete(key_name: str):
    """Delete a stored setting."""
    if ConfigManager().delete(key_name):
        console.print(f"[green]✓[/green] Deleted {key_name}")
    else:
        console.print(f"[yellow]Setting not found:[/yellow] {key_name}")


if __name__ == "__main__":
    cli()
