from __future__ import annotations

import os
import platform
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional


class ShellType(str, Enum):
    POWERSHELL = "powershell"
    CMD = "cmd"
    BASH = "bash"
    ZSH = "zsh"
    FISH = "fish"
    UNKNOWN = "unknown"


SHELL_NAMES = {
    ShellType.POWERSHELL: "PowerShell",
    ShellType.CMD: "Command Prompt (CMD)",
    ShellType.BASH: "Bash",
    ShellType.ZSH: "Zsh",
    ShellType.FISH: "Fish",
}

OS_NAMES = {"windows": "Windows", "darwin": "macOS", "linux": "Linux"}

_FALLBACK_PATHS: Dict[ShellType, List[str]] = {
    ShellType.BASH: ["/bin/bash", "/usr/bin/bash", "/usr/local/bin/bash"],
    ShellType.ZSH: ["/bin/zsh", "/usr/bin/zsh", "/usr/local/bin/zsh"],
    ShellType.FISH: ["/usr/bin/fish", "/usr/local/bin/fish", "/bin/fish"],
}


@dataclass(frozen=True)
class ShellInfo:
    shell: ShellType
    os: str

    @property
    def description(self) -> str:
        return f"{shell_name(self.shell)} on {os_name(self.os)}"


def current_os() -> str:
    return platform.system().lower()


def shell_name(shell: ShellType) -> str:
    return SHELL_NAMES.get(shell, "Unknown Shell")


def os_name(system: Optional[str] = None) -> str:
    system = system or current_os()
    return OS_NAMES.get(system, system)


def _detect_unix_shell(env: Mapping[str, str]) -> ShellType:
    login_shell = env.get("SHELL", "")
    if login_shell:
        base = Path(login_shell).name.lower()
        if "bash" in base:
            return ShellType.BASH
        if "zsh" in base:
            return ShellType.ZSH
        if "fish" in base:
            return ShellType.FISH
        if "pwsh" in base or "powershell" in base:
            return ShellType.POWERSHELL

    if env.get("BASH_VERSION"):
        return ShellType.BASH
    if env.get("ZSH_VERSION"):
        return ShellType.ZSH
    if env.get("FISH_VERSION"):
        return ShellType.FISH
    return ShellType.BASH


def _detect_windows_shell(env: Mapping[str, str]) -> ShellType:
    if env.get("PSModulePath"):
        return ShellType.POWERSHELL
    if env.get("PROMPT"):
        return ShellType.CMD
    if "cmd.exe" in env.get("COMSPEC", "").lower():
        return ShellType.CMD
    if env.get("WSL_DISTRO_NAME"):
        return _detect_unix_shell(env)
    return ShellType.POWERSHELL


def detect_shell(env: Optional[Mapping[str, str]] = None, system: Optional[str] = None) -> ShellInfo:
    """Guess the user's shell from environment variables."""
    env = os.environ if env is None else env
    system = system or current_os()
    if system == "windows":
        return ShellInfo(shell=_detect_windows_shell(env), os=system)
    return ShellInfo(shell=_detect_unix_shell(env), os=system)


def shell_path(shell: ShellType, env: Optional[Mapping[str, str]] = None) -> str:
    """Resolve an executable for a unix shell, falling back to /bin/sh."""
    env = os.environ if env is None else env
    name = shell.value if shell in _FALLBACK_PATHS else "sh"

    login_shell = env.get("SHELL", "")
    if login_shell and name in login_shell:
        return login_shell

    found = shutil.which(name)
    if found:
        return found

    for candidate in _FALLBACK_PATHS.get(shell, []):
        if os.path.exists(candidate):
            return candidate
    return "/bin/sh"
