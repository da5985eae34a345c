from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from re import Match, Pattern
from typing import Callable, Tuple

from rich.markup import escape

logger = logging.getLogger(__name__)

NO_UNDO_DESCRIPTION = "No automatic undo available for this command"


@dataclass(frozen=True)
class UndoPattern:
    pattern: Pattern[str]
    derive: Callable[[Match[str]], str]
    description: str


@dataclass(frozen=True)
class UndoSuggestion:
    original: str
    undo_command: str = ""
    description: str = NO_UNDO_DESCRIPTION
    can_undo: bool = False


def _u(regex: str, derive: Callable[[Match[str]], str], description: str) -> UndoPattern:
    return UndoPattern(re.compile(regex), derive, description)


def _undo_copy(m: Match[str]) -> str:
    flags = m.group(1) or ""
    if set(flags.lower()) & {"r", "a"}:
        return f"rm -r {m.group(3)}"
    return f"rm {m.group(3)}"


def _undo_npm_install(m: Match[str]) -> str:
    if m.group(1):
        return f"npm uninstall {m.group(1)} {m.group(2)}"
    return f"npm uninstall {m.group(2)}"


# First match wins, so more specific entries must come before broader ones.
UNDO_PATTERNS: Tuple[UndoPattern, ...] = (
    # git
    _u(r"^git\s+commit(\s|$)", lambda m: "git reset HEAD~1", "Undo the last commit (keeps changes staged)"),
    _u(r"^git\s+add\s+(.+)$", lambda m: f"git reset {m.group(1)}", "Unstage the added files"),
    _u(r"^git\s+stash(\s+push)?$", lambda m: "git stash pop", "Apply and remove the stash"),
    _u(
        r"^git\s+checkout\s+-b\s+(\S+)",
        lambda m: f"git checkout - && git branch -d {m.group(1)}",
        "Switch back and delete the new branch",
    ),
    _u(r"^git\s+merge\s+(\S+)", lambda m: "git reset --hard HEAD~1", "Undo the merge (warning: discards changes)"),
    # files
    _u(r"^mv\s+(\S+)\s+(\S+)$", lambda m: f"mv {m.group(2)} {m.group(1)}", "Move the file back"),
    _u(r"^cp\s+(?:(-[a-zA-Z]+)\s+)?(\S+)\s+(\S+)$", _undo_copy, "Remove the copied file"),
    _u(r"^mkdir\s+(-p\s+)?(\S+)$", lambda m: f"rmdir {m.group(2)}", "Remove the created directory (if empty)"),
    _u(r"^touch\s+(\S+)$", lambda m: f"rm {m.group(1)}", "Remove the created file"),
    _u(r"^ln\s+(-[a-zA-Z]+\s+)?(\S+)\s+(\S+)$", lambda m: f"rm {m.group(3)}", "Remove the created link"),
    # package managers
    _u(r"^(apt|apt-get)\s+install\s+(.+)$", lambda m: f"{m.group(1)} remove {m.group(2)}", "Uninstall the package"),
    _u(r"^brew\s+install\s+(.+)$", lambda m: f"brew uninstall {m.group(1)}", "Uninstall the package"),
    _u(r"^npm\s+install\s+(?:(-[gG]|--global)\s+)?(.+)$", _undo_npm_install, "Uninstall the package"),
    _u(r"^pip\s+install\s+(.+)$", lambda m: f"pip uninstall {m.group(1)}", "Uninstall the package"),
    # services
    _u(r"^systemctl\s+start\s+(\S+)$", lambda m: f"systemctl stop {m.group(1)}", "Stop the service"),
    _u(r"^systemctl\s+stop\s+(\S+)$", lambda m: f"systemctl start {m.group(1)}", "Start the service"),
    _u(r"^systemctl\s+enable\s+(\S+)$", lambda m: f"systemctl disable {m.group(1)}", "Disable the service"),
    # docker
    _u(
        r"^docker\s+run\s+.*--name\s+(\S+)",
        lambda m: f"docker stop {m.group(1)} && docker rm {m.group(1)}",
        "Stop and remove the container",
    ),
    _u(r"^docker\s+start\s+(\S+)$", lambda m: f"docker stop {m.group(1)}", "Stop the container"),
)


def suggest_undo(command: str) -> UndoSuggestion:
    """Derive an inverse command from the first matching undo pattern."""
    command = command.strip()
    for entry in UNDO_PATTERNS:
        match = entry.pattern.search(command)
        if match:
            suggestion = UndoSuggestion(
                original=command,
                undo_command=entry.derive(match),
                description=entry.description,
                can_undo=True,
            )
            logger.debug("undo for %r: %r", command, suggestion.undo_command)
            return suggestion
    return UndoSuggestion(original=command)


def format_suggestion(suggestion: UndoSuggestion) -> str:
    if not suggestion.can_undo:
        return ""
    return (
        f"[dim]💡 To undo: [/dim][cyan]{escape(suggestion.undo_command)}[/cyan]\n"
        f"[dim]   ({escape(suggestion.description)})[/dim]"
    )
