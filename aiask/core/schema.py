from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    role: Role
    content: str


class RequestConfig(BaseModel):
    model: str
    temperature: float = 0.2
    max_tokens: int = 500
    stream: bool = False


class ResponseChunk(BaseModel):
    content: Optional[str] = None
    finish_reason: Optional[str] = None


class CommandOutput(BaseModel):
    """Machine-readable result of `aiask ask --json`."""

    command: str
    shell: str
    os: str
    prompt: str
    provider: Optional[str] = None
    model: Optional[str] = None
    danger_level: str = "Safe"
    warnings: List[str] = []
    undo: Optional[str] = None
