from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import AsyncGenerator, Callable, List, Optional

import httpx

from .context import (
    current_directory,
    directory_listing,
    git_context,
    git_status_summary,
    is_file_related,
    is_git_related,
    recent_commits,
)
from .schema import Message, RequestConfig, ResponseChunk, Role
from .shell import ShellInfo, os_name, shell_name

logger = logging.getLogger(__name__)

_FENCES = ("```bash\n", "```powershell\n", "```cmd\n", "```shell\n", "```sh\n", "```\n")

EXPLAIN_PROMPT = """You are a shell command explainer. Given a shell command, explain what it does in plain English.

Rules:
- Break down each part of the command
- Explain flags and options
- Mention any potential risks or side effects
- Keep explanations clear and concise"""


class ProviderError(Exception):
    """An LLM backend failed to produce a usable answer."""


def build_system_prompt(shell_info: ShellInfo, suffix: str = "", user_prompt: str = "") -> str:
    prompt = (
        "You are a shell command assistant. Given a natural language request, "
        "return ONLY the shell command(s) needed to accomplish the task.\n\n"
        "Rules:\n"
        "- Return ONLY the command(s), no explanations, no markdown, no code blocks\n"
        "- If multiple commands are needed, put each on a new line\n"
        "- Use the appropriate syntax for the current shell\n"
        "- For dangerous operations, include appropriate safety flags when possible\n\n"
        f"Current shell: {shell_name(shell_info.shell)}\n"
        f"Operating system: {os_name(shell_info.os)}\n"
        f"Current directory: {current_directory()}"
    )

    git = git_context()
    if git.is_repo:
        prompt += f"\nGit branch: {git.branch}"
        if git.is_dirty:
            prompt += " (has uncommitted changes)"

    if suffix:
        prompt += "\n\nAdditional instructions:\n" + suffix

    # extra context only when the request looks like it needs it
    if user_prompt and is_file_related(user_prompt):
        listing = directory_listing()
        if listing:
            prompt += "\n\n" + listing
    if user_prompt and git.is_repo and is_git_related(user_prompt):
        prompt += "\n\n" + git_status_summary(git)
        commits = recent_commits(5)
        if commits:
            prompt += "\nRecent commits:\n" + commits
    return prompt


def clean_command(command: str) -> str:
    """Strip markdown code fences and surrounding whitespace from a model reply."""
    for fence in _FENCES:
        if command.startswith(fence):
            command = command[len(fence):]
            break
    if command.endswith("\n```"):
        command = command[: -len("\n```")]
    elif command.endswith("```"):
        command = command[: -len("```")]
    return command.strip()


class BaseProvider(ABC):
    def __init__(self, model: str, system_prompt_suffix: str = ""):
        self.model = model
        self.system_prompt_suffix = system_prompt_suffix

    @property
    @abstractmethod
    def name(self) -> str:  # provider id
        raise NotImplementedError

    @abstractmethod
    async def chat(self, messages: List[Message], config: RequestConfig) -> ResponseChunk:
        """Non-streaming chat completion."""
        raise NotImplementedError

    @abstractmethod
    async def stream_chat(
        self, messages: List[Message], config: RequestConfig
    ) -> AsyncGenerator[ResponseChunk, None]:
        """Streaming chat completion."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Optional: close underlying http client."""
        return None

    def _command_messages(self, prompt: str, shell_info: ShellInfo) -> List[Message]:
        return [
            Message(role=Role.SYSTEM, content=build_system_prompt(shell_info, self.system_prompt_suffix, prompt)),
            Message(role=Role.USER, content=prompt),
        ]

    async def _complete(self, messages: List[Message], config: RequestConfig) -> str:
        try:
            out = await self.chat(messages, config)
        except httpx.HTTPStatusError as exc:
            raise ProviderError(f"{self.name} API returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"{self.name} API request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(f"{self.name} API returned a malformed response: {exc}") from exc
        if not out.content:
            raise ProviderError(f"no response from {self.name} API")
        return out.content

    async def generate_command(self, prompt: str, shell_info: ShellInfo) -> str:
        logger.debug("generating command with %s/%s", self.name, self.model)
        config = RequestConfig(model=self.model)
        return await self._complete(self._command_messages(prompt, shell_info), config)

    async def generate_command_stream(
        self,
        prompt: str,
        shell_info: ShellInfo,
        on_chunk: Optional[Callable[[str], None]] = None,
    ) -> str:
        config = RequestConfig(model=self.model, stream=True)
        full = ""
        try:
            async for chunk in self.stream_chat(self._command_messages(prompt, shell_info), config):
                if chunk.content:
                    full += chunk.content
                    if on_chunk is not None:
                        on_chunk(chunk.content)
        except httpx.HTTPStatusError as exc:
            raise ProviderError(f"{self.name} API returned {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"streaming {self.name} API request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(f"{self.name} API returned a malformed stream: {exc}") from exc
        if not full:
            raise ProviderError(f"no response from {self.name} API")
        return full

    async def explain_command(self, command: str) -> str:
        messages = [
            Message(role=Role.SYSTEM, content=EXPLAIN_PROMPT),
            Message(role=Role.USER, content=command),
        ]
        return await self._complete(messages, RequestConfig(model=self.model, max_tokens=1000))
