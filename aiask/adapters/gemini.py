from __future__ import annotations

from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx

from aiask.core.provider import BaseProvider
from aiask.core.schema import Message, RequestConfig, ResponseChunk, Role


class GeminiAdapter(BaseProvider):
    """Minimal Google Gemini adapter (Generative Language API).

    Notes:
    - Uses the v1beta endpoint: /v1beta/models/{model}:generateContent
    - Streaming is simulated with a single generateContent call.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        system_prompt_suffix: str = "",
        base_url: str = "https://generativelanguage.googleapis.com",
        timeout: float = 60.0,
    ):
        super().__init__(model=model, system_prompt_suffix=system_prompt_suffix)
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    @property
    def name(self) -> str:
        return "gemini"

    def _to_contents(self, messages: List[Message]) -> List[Dict[str, Any]]:
        contents: List[Dict[str, Any]] = []
        for m in messages:
            if m.role == Role.SYSTEM:
                # sent as systemInstruction
                continue
            role = "user" if m.role == Role.USER else "model"
            contents.append({"role": role, "parts": [{"text": m.content}]})
        return contents

    def _system_instruction(self, messages: List[Message]) -> Optional[Dict[str, Any]]:
        sys_texts = [m.content for m in messages if m.role == Role.SYSTEM]
        if not sys_texts:
            return None
        return {"parts": [{"text": "\n".join(sys_texts)}]}

    async def chat(self, messages: List[Message], config: RequestConfig) -> ResponseChunk:
        path = f"/v1beta/models/{config.model}:generateContent"
        payload: Dict[str, Any] = {
            "contents": self._to_contents(messages),
            "generationConfig": {
                "temperature": config.temperature,
                "maxOutputTokens": config.max_tokens,
            },
        }
        sys_inst = self._system_instruction(messages)
        if sys_inst:
            payload["systemInstruction"] = sys_inst

        r = await self.client.post(path, params={"key": self.api_key}, json=payload)
        r.raise_for_status()
        data = r.json()

        text = ""
        cands = data.get("candidates") or []
        if cands:
            parts = ((cands[0].get("content") or {}).get("parts") or [])
            if parts:
                text = parts[0].get("text", "")
        return ResponseChunk(content=text, finish_reason=(cands[0].get("finishReason") if cands else None))

    async def stream_chat(self, messages: List[Message], config: RequestConfig) -> AsyncGenerator[ResponseChunk, None]:
        chunk = await self.chat(messages, config)
        if chunk.content:
            yield ResponseChunk(content=chunk.content)
        yield ResponseChunk(finish_reason=chunk.finish_reason or "stop")

    async def aclose(self) -> None:
        await self.client.aclose()
