from __future__ import annotations

import json
from typing import Any, AsyncGenerator, Dict, List

import httpx

from aiask.core.provider import BaseProvider
from aiask.core.schema import Message, RequestConfig, ResponseChunk


class OpenAICompatibleAdapter(BaseProvider):
    """Adapter for OpenAI-style Chat Completions endpoints.

    Used for OpenAI itself, xAI Grok and a local Ollama server, which all speak the same API shape.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        system_prompt_suffix: str = "",
        provider_name: str = "openai",
        timeout: float = 60.0,
    ):
        super().__init__(model=model, system_prompt_suffix=system_prompt_suffix)
        self._provider_name = provider_name

        url = base_url.rstrip("/")
        # normalize: accept https://host OR https://host/v1
        if not url.endswith("/v1"):
            url = url + "/v1"
        self.base_url = url
        self.api_key = api_key

        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.client = httpx.AsyncClient(base_url=self.base_url, headers=headers, timeout=timeout)

    @property
    def name(self) -> str:
        return self._provider_name

    def _payload(self, messages: List[Message], config: RequestConfig) -> Dict[str, Any]:
        return {
            "model": config.model,
            "messages": [{"role": m.role.value, "content": m.content} for m in messages],
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
            "stream": config.stream,
        }

    async def chat(self, messages: List[Message], config: RequestConfig) -> ResponseChunk:
        r = await self.client.post("/chat/completions", json=self._payload(messages, config))
        r.raise_for_status()
        data = r.json()

        choices = data.get("choices") or []
        if not choices:
            return ResponseChunk()
        choice = choices[0]
        msg = choice.get("message") or {}
        return ResponseChunk(content=msg.get("content"), finish_reason=choice.get("finish_reason"))

    async def stream_chat(self, messages: List[Message], config: RequestConfig) -> AsyncGenerator[ResponseChunk, None]:
        payload = self._payload(messages, config)
        payload["stream"] = True

        async with self.client.stream("POST", "/chat/completions", json=payload) as r:
            r.raise_for_status()
            async for line in r.aiter_lines():
                if not line:
                    continue
                if line.startswith("data: "):
                    line = line[6:]
                if line.strip() == "[DONE]":
                    break
                try:
                    data = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not data.get("choices"):
                    continue
                delta = data["choices"][0].get("delta", {})
                if not delta:
                    continue
                yield ResponseChunk(
                    content=delta.get("content"),
                    finish_reason=data["choices"][0].get("finish_reason"),
                )

    async def aclose(self) -> None:
        await self.client.aclose()
