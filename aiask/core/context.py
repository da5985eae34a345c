from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

MAX_DIR_ENTRIES = 50
MAX_NAME_LENGTH = 60

FILE_KEYWORDS = (
    "file", "directory", "folder", "find", "search", "list", "delete", "remove",
    "copy", "move", "rename", "compress", "zip", "extract", "archive", "size",
    "large", "small", "old", "new", "recent", "modified", "create", "touch",
    "mkdir", "rmdir", "ls", "dir",
)

GIT_KEYWORDS = (
    "git", "commit", "push", "pull", "merge", "rebase", "branch", "checkout",
    "stash", "log", "diff", "status", "clone", "fetch", "remote", "tag",
    "reset", "revert", "cherry-pick", "squash",
)


@dataclass
class GitContext:
    is_repo: bool = False
    branch: str = ""
    is_dirty: bool = False
    has_untracked: bool = False


def _git(*args: str, cwd: Optional[Path] = None) -> Optional[str]:
    try:
        proc = subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, timeout=5)
    except (OSError, subprocess.TimeoutExpired):
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout


def git_context(cwd: Optional[Path] = None) -> GitContext:
    if _git("rev-parse", "--is-inside-work-tree", cwd=cwd) is None:
        return GitContext()
    branch = (_git("rev-parse", "--abbrev-ref", "HEAD", cwd=cwd) or "").strip()
    status = _git("status", "--porcelain", cwd=cwd) or ""
    lines = [line for line in status.splitlines() if line.strip()]
    return GitContext(
        is_repo=True,
        branch=branch,
        is_dirty=any(not line.startswith("??") for line in lines),
        has_untracked=any(line.startswith("??") for line in lines),
    )


def git_status_summary(ctx: GitContext) -> str:
    if not ctx.is_repo:
        return ""
    lines = ["Git repository detected:", f"  Branch: {ctx.branch}"]
    lines.append("  Status: has uncommitted changes" if ctx.is_dirty else "  Status: clean")
    if ctx.has_untracked:
        lines.append("  Note: has untracked files")
    return "\n".join(lines)


def recent_commits(n: int = 5, cwd: Optional[Path] = None) -> str:
    return (_git("log", "--oneline", "-n", str(n), cwd=cwd) or "").strip()


def _format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    value = size / 1024
    for unit in ("KB", "MB"):
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GB"


def directory_listing(path: Optional[Path] = None) -> str:
    """Summarise visible entries of a directory for the model, dirs first."""
    path = path or Path.cwd()
    try:
        entries = [e for e in path.iterdir() if not e.name.startswith(".")]
    except OSError:
        return ""
    if not entries:
        return f"Current directory: {path} (empty)"

    entries.sort(key=lambda e: (not e.is_dir(), e.name))
    lines: List[str] = [f"Current directory: {path}", "Contents:"]
    for entry in entries[:MAX_DIR_ENTRIES]:
        name = entry.name
        if len(name) > MAX_NAME_LENGTH:
            name = name[: MAX_NAME_LENGTH - 3] + "..."
        if entry.is_dir():
            lines.append(f"  [DIR] {name}/")
        else:
            try:
                size = entry.stat().st_size
            except OSError:
                size = 0
            lines.append(f"  [FILE] {name} ({_format_size(size)})")
    if len(entries) > MAX_DIR_ENTRIES:
        lines.append(f"  ... and more files (showing first {MAX_DIR_ENTRIES})")
    return "\n".join(lines)


def is_file_related(prompt: str) -> bool:
    lowered = prompt.lower()
    return any(k in lowered for k in FILE_KEYWORDS)


def is_git_related(prompt: str) -> bool:
    lowered = prompt.lower()
    return any(k in lowered for k in GIT_KEYWORDS)


def current_directory() -> str:
    try:
        return os.getcwd()
    except OSError:
        return ""
