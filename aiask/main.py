from __future__ import annotations

import asyncio
import json
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import List, NoReturn, Optional

import pyperclip
import typer
from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from aiask.adapters.anthropic import AnthropicAdapter
from aiask.adapters.gemini import GeminiAdapter
from aiask.adapters.openai_compatible import OpenAICompatibleAdapter
from aiask.cli.config import (
    SETTABLE_KEYS,
    AppConfig,
    ConfigError,
    ProviderName,
    config_file,
    load_config,
    load_or_default,
    save_config,
    set_value,
)
from aiask.cli.history import add_entry, load_history, save_history
from aiask.cli.logs import configure_logging
from aiask.cli.repl import ReplSession
from aiask.cli.templates import TemplateError, load_templates, save_templates
from aiask.core.provider import BaseProvider, ProviderError, clean_command
from aiask.core.runtime import CommandResult, ShellRuntime
from aiask.core.safety import analyze, format_warning, is_confirmed, level_name, level_style, requires_confirmation
from aiask.core.schema import CommandOutput
from aiask.core.shell import ShellInfo, ShellType, detect_shell, os_name, shell_name
from aiask.core.undo import format_suggestion, suggest_undo

MAX_STDIN_CHARS = 50_000

app = typer.Typer(add_completion=False, help="Turn natural language into shell commands, safely.")
config_app = typer.Typer(help="Show or change the aiask configuration.")
app.add_typer(config_app, name="config")
template_app = typer.Typer(help="Save, list, run and delete prompt templates.")
app.add_typer(template_app, name="template")
console = Console()
logger = logging.getLogger(__name__)


def _pick_adapter(cfg: AppConfig) -> BaseProvider:
    if cfg.provider == ProviderName.ANTHROPIC:
        return AnthropicAdapter(
            api_key=cfg.api_key,
            model=cfg.model,
            system_prompt_suffix=cfg.system_prompt_suffix,
            timeout=cfg.timeout_seconds,
        )
    if cfg.provider == ProviderName.GEMINI:
        return GeminiAdapter(
            api_key=cfg.api_key,
            model=cfg.model,
            system_prompt_suffix=cfg.system_prompt_suffix,
            timeout=cfg.timeout_seconds,
        )
    # grok, openai and ollama all speak the OpenAI chat completions API
    return OpenAICompatibleAdapter(
        base_url=cfg.base_url,
        api_key="" if cfg.provider == ProviderName.OLLAMA else cfg.api_key,
        model=cfg.model,
        system_prompt_suffix=cfg.system_prompt_suffix,
        provider_name=cfg.provider.value,
        timeout=cfg.timeout_seconds,
    )


def _fail(message: str, json_output: bool = False) -> NoReturn:
    if json_output:
        typer.echo(json.dumps({"error": message}))
    else:
        console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(code=1)


def _load_config_or_exit(json_output: bool = False) -> AppConfig:
    try:
        return load_config()
    except ConfigError as exc:
        _fail(str(exc), json_output)


def _read_stdin(force: bool) -> str:
    stream = sys.stdin
    if stream is None:
        return ""
    if stream.isatty() and not force:
        return ""
    content = stream.read(MAX_STDIN_CHARS + 1)
    if len(content) > MAX_STDIN_CHARS:
        content = content[:MAX_STDIN_CHARS] + "\n... (truncated)"
    return content.strip()


async def _generate(cfg: AppConfig, prompt: str, shell_info: ShellInfo, stream: bool) -> str:
    provider = _pick_adapter(cfg)
    try:
        if not stream:
            return await asyncio.wait_for(provider.generate_command(prompt, shell_info), cfg.timeout_seconds)
        with Live(Text(""), refresh_per_second=10, console=console, transient=True) as live:
            full = ""

            def on_chunk(chunk: str) -> None:
                nonlocal full
                full += chunk
                live.update(Text(full, style="dim"))

            return await asyncio.wait_for(
                provider.generate_command_stream(prompt, shell_info, on_chunk), cfg.timeout_seconds
            )
    except asyncio.TimeoutError:
        raise ProviderError(f"{provider.name} did not answer within {cfg.timeout_seconds:.0f}s") from None
    finally:
        await provider.aclose()


def _display_command(command: str, shell_info: ShellInfo) -> None:
    lexer = "powershell" if shell_info.shell == ShellType.POWERSHELL else "bash"
    console.print()
    console.print(Panel(Syntax(command, lexer, word_wrap=True), title="Suggested command", title_align="left"))
    warning = format_warning(command)
    if warning:
        console.print(warning)
        console.print()


def _prompt_action() -> str:
    console.print("[bold]What would you like to do?[/bold]  [dim]e=execute c=copy d=edit r=re-prompt q=quit[/dim]")
    return Prompt.ask(">", choices=["e", "c", "d", "r", "q"], default="e", console=console)


def _execute(command: str, shell_info: ShellInfo) -> Optional[CommandResult]:
    confirmed = False
    if requires_confirmation(command):
        answer = Prompt.ask(
            "[bold red]This is a potentially dangerous command. Type 'yes' to confirm[/bold red]",
            default="",
            show_default=False,
            console=console,
        )
        if not is_confirmed(answer):
            console.print("[yellow]Execution cancelled.[/yellow]")
            return None
        confirmed = True

    console.print("[dim yellow]Executing...[/dim yellow]\n")
    try:
        result = ShellRuntime(shell_info).run(command, confirm=confirmed)
    except OSError as exc:
        console.print(f"[red]Error:[/red] could not start shell: {escape(str(exc))}")
        return None

    console.print()
    hint = format_suggestion(result.undo)
    if hint:
        console.print(hint)
    return result


def _interaction_loop(cfg: AppConfig, prompt: str, shell_info: ShellInfo, stream: bool, farewell: bool = True) -> int:
    """Generate, show and act on commands for one request. Returns how many commands ran.

    ProviderError propagates to the caller.
    """
    executed = 0
    while True:
        console.print("\n[dim]Generating command...[/dim]")
        command = clean_command(asyncio.run(_generate(cfg, prompt, shell_info, stream)))
        logger.debug("generated command: %r", command)

        next_prompt = None
        while next_prompt is None:
            _display_command(command, shell_info)
            action = _prompt_action()

            if action == "e":
                result = _execute(command, shell_info)
                add_entry(prompt, command, shell_info.shell.value, bool(result and result.ok))
                if result is not None:
                    executed += 1
                if result is not None and not result.ok:
                    console.print(f"[bold red]Command failed with exit status {result.returncode}[/bold red]")
                    if Confirm.ask("Would you like help diagnosing this error?", default=False, console=console):
                        next_prompt = (
                            f"The command '{command}' failed with exit status {result.returncode}. "
                            "How can I fix this?"
                        )
                        continue
                return executed
            if action == "c":
                add_entry(prompt, command, shell_info.shell.value, False)
                try:
                    pyperclip.copy(command)
                except pyperclip.PyperclipException as exc:
                    console.print(f"[red]Error:[/red] failed to copy to clipboard: {escape(str(exc))}")
                else:
                    console.print("[green]✓ Copied to clipboard![/green]")
                return executed
            if action == "d":
                edited = Prompt.ask("New command", default=command, console=console).strip()
                command = edited or command
                continue
            if action == "r":
                new_prompt = Prompt.ask("New request", default="", show_default=False, console=console).strip()
                if not new_prompt:
                    console.print("No new prompt provided.")
                    return executed
                next_prompt = new_prompt
                continue

            if farewell:
                console.print("Goodbye!")
            return executed
        prompt = next_prompt


def _run_interactive(cfg: AppConfig, prompt: str, shell_info: ShellInfo, stream: bool) -> None:
    try:
        _interaction_loop(cfg, prompt, shell_info, stream)
    except ProviderError as exc:
        _fail(f"failed to generate command: {exc}")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging on stderr"),
) -> None:
    configure_logging(verbose)


@app.command()
def ask(
    prompt: Optional[List[str]] = typer.Argument(None, help="What you want to do, in plain words"),
    stream: bool = typer.Option(False, "--stream", "-s", help="Stream the response as it is generated"),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON (non-interactive)"),
    use_stdin: bool = typer.Option(False, "--stdin", help="Read additional context from stdin"),
) -> None:
    """Generate a shell command, review it, then execute, copy or edit it."""
    text = " ".join(prompt or [])
    extra = _read_stdin(use_stdin)
    if extra:
        if text:
            text = f"{text}\n\nContext:\n{extra}"
        else:
            text = f"Analyze this output and suggest a solution:\n\n{extra}"
    if not text:
        console.print('Usage: aiask ask "your request here"')
        console.print("Run 'aiask config set provider <name>' to set up your LLM provider.")
        raise typer.Exit(code=1)

    cfg = _load_config_or_exit(json_output)
    shell_info = detect_shell()
    logger.debug("shell=%s os=%s provider=%s model=%s", shell_info.shell.value, shell_info.os, cfg.provider.value, cfg.model)

    if not json_output:
        _run_interactive(cfg, text, shell_info, stream)
        return

    try:
        command = clean_command(asyncio.run(_generate(cfg, text, shell_info, stream=False)))
    except ProviderError as exc:
        _fail(f"failed to generate command: {exc}", json_output=True)
    analysis = analyze(command)
    undo = suggest_undo(command)
    out = CommandOutput(
        command=command,
        shell=shell_info.shell.value,
        os=shell_info.os,
        prompt=text,
        provider=cfg.provider.value,
        model=cfg.model,
        danger_level=level_name(analysis.level),
        warnings=analysis.warnings,
        undo=undo.undo_command or None,
    )
    typer.echo(out.model_dump_json(indent=2))
    add_entry(text, command, shell_info.shell.value, False)


@app.command()
def explain(command: List[str] = typer.Argument(..., help="The command to explain")) -> None:
    """Explain what a shell command does in plain English."""
    text = " ".join(command)
    cfg = _load_config_or_exit()

    async def _run() -> str:
        provider = _pick_adapter(cfg)
        try:
            return await asyncio.wait_for(provider.explain_command(text), cfg.timeout_seconds)
        except asyncio.TimeoutError:
            raise ProviderError(f"{provider.name} did not answer within {cfg.timeout_seconds:.0f}s") from None
        finally:
            await provider.aclose()

    console.print("\n[dim]Analyzing command...[/dim]\n")
    try:
        explanation = asyncio.run(_run())
    except ProviderError as exc:
        _fail(f"failed to explain command: {exc}")

    console.print("[bold cyan]Command:[/bold cyan]")
    console.print(f"  [green]{escape(text)}[/green]\n")
    console.print("[bold cyan]Explanation:[/bold cyan]")
    console.print(Markdown(explanation))
    warning = format_warning(text)
    if warning:
        console.print()
        console.print(warning)


@app.command()
def check(command: List[str] = typer.Argument(..., help="The command to classify")) -> None:
    """Classify a command's risk without calling any model.

    Exits with status 2 when the command would need explicit confirmation.
    """
    text = " ".join(command)
    result = analyze(text)
    style = level_style(result.level)
    console.print(f"Level: [{style}]{level_name(result.level)}[/{style}]")
    if result.warnings:
        for warning in result.warnings:
            console.print(f"   • {warning}")
    else:
        console.print("[green]No dangerous patterns detected.[/green]")

    hint = format_suggestion(suggest_undo(text))
    if hint:
        console.print(hint)
    if requires_confirmation(text):
        raise typer.Exit(code=2)


@app.command()
def undo(command: List[str] = typer.Argument(..., help="A command you already ran")) -> None:
    """Suggest a command that reverses COMMAND."""
    suggestion = suggest_undo(" ".join(command))
    if not suggestion.can_undo:
        console.print(f"[dim]{suggestion.description}[/dim]")
        raise typer.Exit(code=1)
    console.print(format_suggestion(suggestion))


@app.command()
def history(
    limit: int = typer.Option(10, "--limit", "-n", help="How many entries to show (0 = all)"),
    search: Optional[str] = typer.Option(None, "--search", "-q", help="Filter by prompt or command text"),
    clear: bool = typer.Option(False, "--clear", help="Delete all history"),
) -> None:
    """Show previously generated commands."""
    try:
        hist = load_history()
    except ConfigError as exc:
        _fail(str(exc))

    if clear:
        hist.clear()
        save_history(hist)
        console.print("[bold green]OK[/bold green] history cleared")
        return

    entries = hist.search(search) if search else hist.recent(limit)
    if search and limit > 0:
        entries = entries[:limit]
    if not entries:
        console.print("No history entries.")
        return

    t = Table(title="Command history")
    t.add_column("when", style="dim")
    t.add_column("prompt")
    t.add_column("command", style="cyan")
    t.add_column("shell")
    t.add_column("executed")
    for e in entries:
        t.add_row(
            e.timestamp.strftime("%Y-%m-%d %H:%M"),
            escape(e.prompt),
            escape(e.command),
            e.shell,
            "✓" if e.executed else "",
        )
    console.print(t)


@app.command()
def interactive(
    stream: bool = typer.Option(False, "--stream", "-s", help="Stream responses as they are generated"),
) -> None:
    """Start a session that keeps taking requests until /exit."""
    cfg = _load_config_or_exit()
    shell_info = detect_shell()

    def handle(prompt: str) -> int:
        try:
            return _interaction_loop(cfg, prompt, shell_info, stream, farewell=False)
        except ProviderError as exc:
            console.print(f"[red]Error:[/red] failed to generate command: {escape(str(exc))}")
            return 0

    ReplSession(cfg, shell_info, handle, console).run()


@template_app.command("save")
def template_save(
    name: str = typer.Argument(..., help="Template name (letters, digits, - and _)"),
    prompt: List[str] = typer.Argument(..., help="The request to save"),
    description: str = typer.Option("", "--description", "-d", help="Short description"),
) -> None:
    """Save a request as a named template."""
    try:
        templates = load_templates()
        templates.add(name, " ".join(prompt), description)
        save_templates(templates)
    except ConfigError as exc:
        _fail(str(exc))
    console.print(f"[green]✓ Template '{escape(name)}' saved.[/green] Run it with: [cyan]aiask template use {escape(name)}[/cyan]")


@template_app.command("list")
def template_list(
    by_usage: bool = typer.Option(False, "--by-usage", help="Most used first"),
) -> None:
    """List saved templates."""
    try:
        templates = load_templates()
    except ConfigError as exc:
        _fail(str(exc))

    if not templates.items:
        console.print("No templates saved yet.")
        console.print('Save one with: [cyan]aiask template save <name> "<prompt>"[/cyan]')
        return

    t = Table(title="Saved templates")
    t.add_column("name", style="bold")
    t.add_column("prompt", style="cyan")
    t.add_column("description", style="dim")
    t.add_column("uses", justify="right")
    for tmpl in templates.by_usage() if by_usage else templates.by_name():
        t.add_row(escape(tmpl.name), escape(tmpl.prompt), escape(tmpl.description), str(tmpl.usage_count))
    console.print(t)


@template_app.command("use")
def template_use(
    name: str = typer.Argument(..., help="Template to run"),
    stream: bool = typer.Option(False, "--stream", "-s", help="Stream the response as it is generated"),
) -> None:
    """Run a saved template as if it were typed into `aiask ask`."""
    try:
        templates = load_templates()
        tmpl = templates.record_use(name)
    except TemplateError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        names = [t.name for t in templates.by_name()]
        if names:
            console.print("Available templates: " + ", ".join(escape(n) for n in names))
        raise typer.Exit(code=1)
    except ConfigError as exc:
        _fail(str(exc))

    cfg = _load_config_or_exit()
    try:
        save_templates(templates)
    except OSError as exc:
        logger.warning("could not update template usage: %s", exc)

    console.print(f"[dim]Running template '{escape(name)}': {escape(tmpl.prompt)}[/dim]")
    _run_interactive(cfg, tmpl.prompt, detect_shell(), stream)


@template_app.command("delete")
def template_delete(name: str = typer.Argument(..., help="Template to delete")) -> None:
    """Delete a saved template."""
    try:
        templates = load_templates()
        templates.remove(name)
        save_templates(templates)
    except ConfigError as exc:
        _fail(str(exc))
    console.print(f"[green]✓ Template '{escape(name)}' removed[/green]")


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration (file plus AIASK_* overrides)."""
    cfg = _load_config_or_exit()
    t = Table(title="aiask configuration")
    t.add_column("key", style="cyan")
    t.add_column("value")
    for key, value in cfg.model_dump(mode="json").items():
        if key == "api_key" and value:
            value = value[:4] + "…" if len(value) > 8 else "…"
        t.add_row(key, escape(str(value)))
    console.print(t)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help=f"One of: {', '.join(SETTABLE_KEYS)}"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Change one configuration value."""
    try:
        cfg = set_value(load_or_default(), key, value)
        save_config(cfg)
    except ConfigError as exc:
        _fail(str(exc))
    console.print(f"[bold green]OK[/bold green] {key} saved to {config_file()}")


@config_app.command("path")
def config_path() -> None:
    """Print the config file location."""
    typer.echo(str(config_file()))


@app.command("version")
def version_cmd() -> None:
    """Print the version number."""
    try:
        current = version("aiask")
    except PackageNotFoundError:
        current = "dev"
    detected = detect_shell()
    console.print(f"aiask version {current} ({shell_name(detected.shell)} on {os_name(detected.os)})")


if __name__ == "__main__":
    app()
