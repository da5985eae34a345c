from __future__ import annotations

import json
from typing import Any, AsyncGenerator, Dict, List, Tuple

import httpx

from aiask.core.provider import BaseProvider
from aiask.core.schema import Message, RequestConfig, ResponseChunk, Role


class AnthropicAdapter(BaseProvider):
    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt_suffix: str = "",
        base_url: str = "https://api.anthropic.com",
        timeout: float = 60.0,
    ):
        super().__init__(model=model, system_prompt_suffix=system_prompt_suffix)
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "content-type": "application/json",
            },
            timeout=timeout,
        )

    @property
    def name(self) -> str:
        return "anthropic"

    def _split_system(self, messages: List[Message]) -> Tuple[str, List[Dict[str, Any]]]:
        system_parts: List[str] = []
        out: List[Dict[str, Any]] = []
        for m in messages:
            if m.role == Role.SYSTEM:
                system_parts.append(m.content)
                continue
            # anthropic expects role user/assistant
            out.append({"role": m.role.value, "content": m.content})
        return "\n".join(system_parts).strip(), out

    def _payload(self, messages: List[Message], config: RequestConfig) -> Dict[str, Any]:
        system, msgs = self._split_system(messages)
        payload: Dict[str, Any] = {
            "model": config.model,
            "messages": msgs,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
        }
        if system:
            payload["system"] = system
        return payload

    async def chat(self, messages: List[Message], config: RequestConfig) -> ResponseChunk:
        r = await self.client.post("/v1/messages", json=self._payload(messages, config))
        r.raise_for_status()
        data = r.json()
        text = ""
        if isinstance(data.get("content"), list) and data["content"]:
            # [{type:'text', text:'...'}]
            text = data["content"][0].get("text", "")
        return ResponseChunk(content=text, finish_reason=data.get("stop_reason"))

    async def stream_chat(self, messages: List[Message], config: RequestConfig) -> AsyncGenerator[ResponseChunk, None]:
        payload = self._payload(messages, config)
        payload["stream"] = True

        async with self.client.stream("POST", "/v1/messages", json=payload) as r:
            r.raise_for_status()
            async for line in r.aiter_lines():
                if not line.startswith("data: "):
                    continue
                try:
                    data = json.loads(line[6:])
                except json.JSONDecodeError:
                    continue

                t = data.get("type")
                if t == "content_block_delta":
                    delta = data.get("delta", {})
                    if delta.get("text"):
                        yield ResponseChunk(content=delta["text"])
                elif t == "message_stop":
                    yield ResponseChunk(finish_reason="stop")
                    break

    async def aclose(self) -> None:
        await self.client.aclose()
