from __future__ import annotations

import json
import re
from datetime import datetime
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, ValidationError

from aiask.cli import config

MAX_NAME_LENGTH = 50
NAME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*$")


class TemplateError(config.ConfigError):
    """Invalid template name, duplicate, or unknown template."""


class Template(BaseModel):
    name: str
    prompt: str
    description: str = ""
    created_at: datetime = Field(default_factory=datetime.now)
    usage_count: int = 0


def validate_name(name: str) -> None:
    if not name:
        raise TemplateError("template name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise TemplateError(f"template name cannot exceed {MAX_NAME_LENGTH} characters")
    if not NAME_RE.match(name):
        raise TemplateError(
            "template name must start with a letter and contain only letters, numbers, dashes, and underscores"
        )


class Templates(BaseModel):
    items: List[Template] = Field(default_factory=list)

    def add(self, name: str, prompt: str, description: str = "") -> Template:
        validate_name(name)
        if any(t.name == name for t in self.items):
            raise TemplateError(f"template '{name}' already exists")
        if not prompt.strip():
            raise TemplateError("template prompt cannot be empty")
        template = Template(name=name, prompt=prompt.strip(), description=description)
        self.items.append(template)
        return template

    def get(self, name: str) -> Template:
        for t in self.items:
            if t.name == name:
                return t
        raise TemplateError(f"template '{name}' not found")

    def remove(self, name: str) -> None:
        self.items.remove(self.get(name))

    def record_use(self, name: str) -> Template:
        template = self.get(name)
        template.usage_count += 1
        return template

    def by_name(self) -> List[Template]:
        return sorted(self.items, key=lambda t: t.name)

    def by_usage(self) -> List[Template]:
        return sorted(self.items, key=lambda t: t.usage_count, reverse=True)


def templates_file() -> Path:
    return config.CONFIG_DIR / "templates.json"


def load_templates() -> Templates:
    path = templates_file()
    if not path.exists():
        return Templates()
    try:
        with path.open("r", encoding="utf-8") as f:
            return Templates(**json.load(f))
    except (OSError, json.JSONDecodeError, ValidationError, TypeError) as exc:
        raise config.ConfigError(f"failed to read templates file {path}: {exc}") from exc


def save_templates(templates: Templates) -> None:
    config.write_json_atomic(templates_file(), templates.model_dump(mode="json"))
