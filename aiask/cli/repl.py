from __future__ import annotations

import time
from typing import Callable, List

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.rule import Rule
from rich.table import Table

from aiask.cli.config import AppConfig
from aiask.core.shell import ShellInfo, os_name, shell_name

# (aliases, help text) in display order
COMMANDS = (
    (("help", "h", "?"), "Show this help message"),
    (("history", "hist"), "Show session history"),
    (("clear", "cls"), "Clear the screen"),
    (("config",), "Show current configuration"),
    (("stats",), "Show session statistics"),
    (("exit", "quit", "q"), "Exit interactive mode"),
)


def _duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


class ReplSession:
    """Read requests in a loop and hand each one to `handle_prompt`.

    `handle_prompt` returns how many commands it executed. Lines starting
    with "/" are session commands.
    """

    def __init__(
        self,
        cfg: AppConfig,
        shell_info: ShellInfo,
        handle_prompt: Callable[[str], int],
        console: Console,
    ):
        self.cfg = cfg
        self.shell_info = shell_info
        self.handle_prompt = handle_prompt
        self.console = console
        self.prompts: List[str] = []
        self.executed = 0
        self.started = time.monotonic()

    def run(self) -> None:
        self.print_welcome()
        while True:
            try:
                line = Prompt.ask(f"[dim]\\[{len(self.prompts) + 1}][/dim] [bold cyan]>[/bold cyan]", console=self.console)
            except (EOFError, KeyboardInterrupt):
                self.print_goodbye()
                return
            line = (line or "").strip()
            if not line:
                continue
            if line.startswith("/"):
                if not self.handle_command(line):
                    return
                continue
            self.prompts.append(line)
            self.executed += self.handle_prompt(line)

    def handle_command(self, line: str) -> bool:
        """Run a /command. Returns False when the session should end."""
        parts = line[1:].lower().split()
        if not parts:
            return True
        name = parts[0]
        if name in ("help", "h", "?"):
            self.print_help()
        elif name in ("history", "hist"):
            self.print_history()
        elif name in ("clear", "cls"):
            self.console.clear()
            self.print_welcome()
        elif name == "config":
            self.print_config()
        elif name == "stats":
            self.print_stats()
        elif name in ("exit", "quit", "q"):
            self.print_goodbye()
            return False
        else:
            self.console.print(f"[yellow]Unknown command: {escape(name)}. Type /help for available commands.[/yellow]")
        return True

    def print_welcome(self) -> None:
        c = self.console
        c.print()
        c.print(Rule("aiask interactive mode"))
        c.print(
            f"[dim]Provider:[/dim] [cyan]{self.cfg.provider.value}[/cyan]  "
            f"[dim]Model:[/dim] [cyan]{escape(self.cfg.model)}[/cyan]  "
            f"[dim]Shell:[/dim] [cyan]{shell_name(self.shell_info.shell)}[/cyan]"
        )
        c.print("[dim]Type a request in plain words, or /help for commands.[/dim]\n")

    def print_help(self) -> None:
        t = Table(title="Session commands", show_header=False)
        t.add_column("command", style="cyan")
        t.add_column("description")
        for aliases, text in COMMANDS:
            t.add_row(", ".join("/" + a for a in aliases), text)
        self.console.print(t)

    def print_history(self) -> None:
        if not self.prompts:
            self.console.print("No history in this session yet.")
            return
        for i, prompt in enumerate(self.prompts, 1):
            self.console.print(f"  [dim]{i}.[/dim] {escape(prompt)}")

    def print_config(self) -> None:
        t = Table(title="Configuration", show_header=False)
        t.add_column("key", style="dim")
        t.add_column("value", style="cyan")
        t.add_row("Provider", self.cfg.provider.value)
        t.add_row("Model", escape(self.cfg.model))
        t.add_row("Shell", shell_name(self.shell_info.shell))
        t.add_row("OS", os_name(self.shell_info.os))
        t.add_row("Timeout", f"{self.cfg.timeout_seconds:.0f}s")
        self.console.print(t)

    def print_stats(self) -> None:
        self.console.print(
            f"Session: {_duration(time.monotonic() - self.started)}  "
            f"Prompts: {len(self.prompts)}  Commands executed: {self.executed}"
        )

    def print_goodbye(self) -> None:
        self.console.print()
        self.print_stats()
        self.console.print("[dim]Goodbye![/dim]")
