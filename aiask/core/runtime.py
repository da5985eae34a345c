from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from .safety import analyze
from .shell import ShellInfo, ShellType, shell_path
from .undo import UndoSuggestion, suggest_undo

logger = logging.getLogger(__name__)


class ConfirmationRequired(RuntimeError):
    """Raised when a dangerous command is run without explicit confirmation."""

    def __init__(self, command: str, warnings: List[str]):
        self.command = command
        self.warnings = warnings
        super().__init__(f"Refusing to run potentially dangerous command without confirmation: {command}")


@dataclass
class CommandResult:
    command: str
    returncode: int
    undo: UndoSuggestion

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ShellRuntime:
    """Runs generated commands through the user's shell.

    This is NOT a sandbox. Dangerous commands are refused unless the caller
    passes confirm=True after asking the user.
    """

    def __init__(self, shell_info: ShellInfo, require_confirm: bool = True):
        self.shell_info = shell_info
        self.require_confirm = require_confirm

    def argv(self, command: str) -> List[str]:
        if self.shell_info.os == "windows":
            if self.shell_info.shell == ShellType.POWERSHELL:
                return ["powershell", "-NoProfile", "-Command", command]
            return ["cmd", "/C", command]
        return [shell_path(self.shell_info.shell), "-c", command]

    def run(self, command: str, confirm: bool = False, cwd: Optional[str] = None) -> CommandResult:
        analysis = analyze(command)
        if self.require_confirm and analysis.is_dangerous and not confirm:
            raise ConfirmationRequired(command, analysis.warnings)

        argv = self.argv(command)
        logger.debug("executing %s", argv)
        # stdio is inherited so interactive commands keep working
        proc = subprocess.run(argv, cwd=cwd)
        if proc.returncode != 0:
            logger.info("command exited with status %d: %s", proc.returncode, command)
        return CommandResult(command=command, returncode=proc.returncode, undo=suggest_undo(command))
