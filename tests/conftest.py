"""Shared fixtures: keep tests away from the real ~/.aiask and AIASK_* env."""

from typing import AsyncGenerator, List

import pytest

from aiask.cli import config
from aiask.core.provider import BaseProvider
from aiask.core.schema import Message, RequestConfig, ResponseChunk


class FakeProvider(BaseProvider):
    """Answers with canned replies, in order, and records the prompts it saw."""

    def __init__(self, *replies: str):
        super().__init__(model="fake-model")
        self.replies = list(replies)
        self.prompts: List[str] = []
        self.closed = 0

    @property
    def name(self) -> str:
        return "fake"

    async def chat(self, messages: List[Message], config: RequestConfig) -> ResponseChunk:
        return ResponseChunk(content=self.replies.pop(0))

    async def stream_chat(self, messages: List[Message], config: RequestConfig) -> AsyncGenerator[ResponseChunk, None]:
        yield ResponseChunk(content=self.replies.pop(0))

    async def generate_command(self, prompt, shell_info):
        self.prompts.append(prompt)
        return self.replies.pop(0)

    async def explain_command(self, command: str) -> str:
        self.prompts.append(command)
        return self.replies.pop(0)

    async def aclose(self) -> None:
        self.closed += 1


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    home = tmp_path / ".aiask"
    monkeypatch.setattr(config, "CONFIG_DIR", home)
    for name in (
        config.ENV_PROVIDER,
        config.ENV_API_KEY,
        config.ENV_MODEL,
        config.ENV_OLLAMA_URL,
        config.ENV_TIMEOUT,
        config.ENV_SYSTEM_PROMPT_SUFFIX,
    ):
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setenv(config.ENV_PROVIDER, "openai")
    monkeypatch.setenv(config.ENV_API_KEY, "sk-test")


@pytest.fixture
def make_provider():
    return FakeProvider
