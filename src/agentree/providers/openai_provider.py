"""OpenAI-compatible chat completions client (OpenAI, Azure proxies, Ollama, vLLM...)."""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator, Optional

import httpx

from ..models.config import AgentTreeConfig
from ..models.messages import (
    FunctionCall,
    LLMResponse,
    Message,
    StreamChunk,
    ToolCall,
    ToolCallDelta,
    Usage,
)
from ..models.tool import ToolMetadata
from .base import BaseLLMClient

logger = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    name = "openai"

    def __init__(self, config: AgentTreeConfig, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self._http_client = http_client

    @property
    def url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/chat/completions"

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

    def _body(self, messages: list[Message], tools: Optional[list[ToolMetadata]], stream: bool) -> dict:
        body: dict = {
            "model": self.config.model,
            "messages": [m.to_wire() for m in messages],
            "temperature": self.config.temperature,
        }
        if tools:
            body["tools"] = [t.to_wire() for t in tools]
            body["tool_choice"] = "auto"
        if stream:
            body["stream"] = True
        return body

    def _client(self) -> httpx.AsyncClient:
        return self._http_client or httpx.AsyncClient(timeout=self.config.timeout_seconds)

    async def complete(
        self,
        messages: list[Message],
        tools: Optional[list[ToolMetadata]] = None,
    ) -> LLMResponse:
        body = self._body(messages, tools, stream=False)
        client = self._client()
        try:
            response = await client.post(self.url, json=body, headers=self._headers())
            response.raise_for_status()
            data = response.json()
        finally:
            if client is not self._http_client:
                await client.aclose()

        message = data["choices"][0]["message"]
        tool_calls = [
            ToolCall(
                id=tc["id"],
                function=FunctionCall(
                    name=tc["function"]["name"],
                    arguments=tc["function"].get("arguments") or "",
                ),
            )
            for tc in message.get("tool_calls") or []
        ]
        usage = data.get("usage")
        return LLMResponse(
            content=message.get("content") or "",
            tool_calls=tool_calls or None,
            usage=Usage(**usage) if usage else None,
        )

    async def chat_stream(
        self,
        messages: list[Message],
        tools: Optional[list[ToolMetadata]] = None,
    ) -> AsyncIterator[StreamChunk]:
        """Yield chunks from a server-sent-events stream, ending with one ``done`` chunk."""
        body = self._body(messages, tools, stream=True)
        client = self._client()
        done_sent = False
        try:
            async with client.stream("POST", self.url, json=body, headers=self._headers()) as response:
                if response.is_error:
                    await response.aread()
                    response.raise_for_status()

                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line.startswith("data:"):
                        continue
                    payload = line[len("data:"):].strip()
                    if payload == "[DONE]":
                        break
                    chunk = self._parse_chunk(json.loads(payload))
                    if chunk is None:
                        continue
                    done_sent = chunk.done
                    yield chunk
                    if done_sent:
                        break
        finally:
            if client is not self._http_client:
                await client.aclose()

        if not done_sent:
            yield StreamChunk(done=True)

    @staticmethod
    def _parse_chunk(data: dict) -> Optional[StreamChunk]:
        choices = data.get("choices") or []
        usage = data.get("usage")
        if not choices:
            return StreamChunk(usage=Usage(**usage)) if usage else None

        choice = choices[0]
        delta = choice.get("delta") or {}
        deltas = [ToolCallDelta(**tc) for tc in delta.get("tool_calls") or []]
        return StreamChunk(
            content=delta.get("content") or None,
            tool_calls=deltas or None,
            usage=Usage(**usage) if usage else None,
            done=choice.get("finish_reason") is not None,
        )
