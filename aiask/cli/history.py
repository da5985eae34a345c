from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, ValidationError

from aiask.cli import config

logger = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 100


class HistoryEntry(BaseModel):
    timestamp: datetime = Field(default_factory=datetime.now)
    prompt: str
    command: str
    shell: str
    executed: bool = False


class History(BaseModel):
    entries: List[HistoryEntry] = Field(default_factory=list)  # newest first

    def add(self, entry: HistoryEntry) -> None:
        self.entries.insert(0, entry)
        del self.entries[MAX_HISTORY_ENTRIES:]

    def clear(self) -> None:
        self.entries = []

    def recent(self, n: int) -> List[HistoryEntry]:
        if n <= 0 or n > len(self.entries):
            return list(self.entries)
        return self.entries[:n]

    def search(self, query: str) -> List[HistoryEntry]:
        q = query.lower()
        return [e for e in self.entries if q in e.prompt.lower() or q in e.command.lower()]


def history_file() -> Path:
    return config.CONFIG_DIR / "history.json"


def load_history() -> History:
    path = history_file()
    if not path.exists():
        return History()
    try:
        with path.open("r", encoding="utf-8") as f:
            return History(**json.load(f))
    except (OSError, json.JSONDecodeError, ValidationError, TypeError) as exc:
        raise config.ConfigError(f"failed to read history file {path}: {exc}") from exc


def save_history(history: History) -> None:
    path = history_file()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(history.model_dump(mode="json"), f, indent=2, ensure_ascii=False)


def add_entry(prompt: str, command: str, shell: str, executed: bool) -> None:
    """Record a generated command. Failures are logged, never raised."""
    try:
        history = load_history()
        history.add(HistoryEntry(prompt=prompt, command=command, shell=shell, executed=executed))
        save_history(history)
    except (OSError, config.ConfigError) as exc:
        logger.warning("could not record history: %s", exc)
