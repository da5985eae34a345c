from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import IntEnum
from re import Pattern
from typing import List, Tuple

logger = logging.getLogger(__name__)


class DangerLevel(IntEnum):
    SAFE = 0
    CAUTION = 1
    DANGEROUS = 2
    CRITICAL = 3


LEVEL_NAMES = {
    DangerLevel.SAFE: "Safe",
    DangerLevel.CAUTION: "Caution",
    DangerLevel.DANGEROUS: "Dangerous",
    DangerLevel.CRITICAL: "CRITICAL",
}

LEVEL_STYLES = {
    DangerLevel.SAFE: "green",
    DangerLevel.CAUTION: "yellow",
    DangerLevel.DANGEROUS: "red",
    DangerLevel.CRITICAL: "bold red",
}

CONFIRMATION_TOKEN = "yes"


@dataclass(frozen=True)
class DangerousPattern:
    pattern: Pattern[str]
    description: str
    level: DangerLevel


@dataclass
class AnalysisResult:
    level: DangerLevel = DangerLevel.SAFE
    warnings: List[str] = field(default_factory=list)

    @property
    def is_dangerous(self) -> bool:
        return self.level >= DangerLevel.DANGEROUS


def _p(regex: str, description: str, level: DangerLevel) -> DangerousPattern:
    return DangerousPattern(re.compile(regex, re.IGNORECASE), description, level)


# Every entry is tested; order only decides the order of warnings.
DANGEROUS_PATTERNS: Tuple[DangerousPattern, ...] = (
    # critical
    _p(r"rm\s+(-[a-z]*f[a-z]*\s+)?(-[a-z]*r[a-z]*\s+)?(/|\*|~)", "Recursive delete of root, all files, or home directory", DangerLevel.CRITICAL),
    _p(r"rm\s+-[a-z]*rf[a-z]*\s+/", "Recursive force delete from root", DangerLevel.CRITICAL),
    _p(r"dd\s+.*of=/dev/(sd|hd|nvme)", "Direct disk write operation", DangerLevel.CRITICAL),
    _p(r"mkfs", "Format filesystem", DangerLevel.CRITICAL),
    _p(re.escape(":(){ :|:& };:"), "Fork bomb", DangerLevel.CRITICAL),
    _p(r">\s*/dev/sd", "Overwrite disk device", DangerLevel.CRITICAL),
    _p(r"chmod\s+(-[a-z]*R[a-z]*\s+)?777\s+/", "Set world-writable permissions on root", DangerLevel.CRITICAL),
    # dangerous
    _p(r"rm\s+-[a-z]*r", "Recursive delete", DangerLevel.DANGEROUS),
    _p(r"rm\s+-[a-z]*f", "Force delete without confirmation", DangerLevel.DANGEROUS),
    _p(r"del\s+/[sq]", "Windows force/quiet delete", DangerLevel.DANGEROUS),
    _p(r"rmdir\s+/s", "Windows recursive directory delete", DangerLevel.DANGEROUS),
    _p(r"drop\s+(table|database|schema)", "SQL drop operation", DangerLevel.DANGEROUS),
    _p(r"truncate\s+table", "SQL truncate operation", DangerLevel.DANGEROUS),
    _p(r"delete\s+from\s+\w+\s*($|;|where\s+1\s*=\s*1)", "SQL delete without proper WHERE clause", DangerLevel.DANGEROUS),
    _p(r">\s*/etc/", "Overwrite system config file", DangerLevel.DANGEROUS),
    _p(r"curl.*\|\s*(ba)?sh", "Piping remote content to shell", DangerLevel.DANGEROUS),
    _p(r"wget.*\|\s*(ba)?sh", "Piping remote content to shell", DangerLevel.DANGEROUS),
    _p(r"git\s+(push|reset)\s+.*--force", "Force git operation", DangerLevel.DANGEROUS),
    _p(r"git\s+clean\s+-[a-z]*f", "Force git clean", DangerLevel.DANGEROUS),
    # caution
    _p(r"rm\s+", "Delete operation", DangerLevel.CAUTION),
    _p(r"mv\s+.*\s+/dev/null", "Move to /dev/null (delete)", DangerLevel.CAUTION),
    _p(r"chmod\s+", "Permission change", DangerLevel.CAUTION),
    _p(r"chown\s+", "Ownership change", DangerLevel.CAUTION),
    _p(r"kill\s+-9", "Force kill process", DangerLevel.CAUTION),
    _p(r"pkill\s+", "Kill processes by pattern", DangerLevel.CAUTION),
    _p(r"shutdown|reboot|halt|poweroff", "System shutdown/reboot", DangerLevel.CAUTION),
    _p(r"systemctl\s+(stop|disable|mask)", "Stop/disable system service", DangerLevel.CAUTION),
    _p(r"service\s+\w+\s+stop", "Stop system service", DangerLevel.CAUTION),
    _p(r"iptables\s+-F", "Flush firewall rules", DangerLevel.CAUTION),
    _p(r"git\s+reset\s+--hard", "Hard git reset", DangerLevel.CAUTION),
    _p(r"git\s+checkout\s+--\s+\.", "Discard all changes", DangerLevel.CAUTION),
)


def analyze(command: str) -> AnalysisResult:
    """Classify a command against every dangerous pattern.

    All matching descriptions are collected in table order and the highest
    matching level wins. A command that matches nothing is SAFE.
    """
    result = AnalysisResult()
    for entry in DANGEROUS_PATTERNS:
        if entry.pattern.search(command):
            result.warnings.append(entry.description)
            if entry.level > result.level:
                result.level = entry.level
    if result.warnings:
        logger.debug("command %r classified %s: %s", command, result.level.name, result.warnings)
    return result


def level_name(level: DangerLevel) -> str:
    return LEVEL_NAMES.get(level, "Unknown")


def level_style(level: DangerLevel) -> str:
    return LEVEL_STYLES.get(level, "default")


def requires_confirmation(command: str) -> bool:
    return analyze(command).level >= DangerLevel.DANGEROUS


def is_confirmed(answer: str) -> bool:
    return answer.strip().lower() == CONFIRMATION_TOKEN


def format_warning(command: str) -> str:
    """Render a rich-markup warning block, or "" below CAUTION."""
    result = analyze(command)
    if result.level < DangerLevel.CAUTION:
        return ""

    style = level_style(result.level)
    lines = [f"[{style}]⚠️  {level_name(result.level)} Warning[/{style}]"]
    for warning in result.warnings:
        lines.append(f"   • {warning}")
    if result.is_dangerous:
        lines.append("")
        lines.append(
            f"[{style}]   Type '{CONFIRMATION_TOKEN}' to confirm execution, or any other key to cancel.[/{style}]"
        )
    return "\n".join(lines)
