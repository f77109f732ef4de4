"""LLM client abstraction with retry logic and stream accumulation.

Both transport modes end in the same LLMResponse shape: a streamed reply is
folded chunk by chunk into content plus complete tool calls before the agent
sees it, so the agent loop has a single code path.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator, Awaitable, Callable, Optional, Protocol, TypeVar, runtime_checkable

import httpx

from ..core.errors import TransportError
from ..models.config import AgentTreeConfig
from ..models.messages import FunctionCall, LLMResponse, Message, StreamChunk, ToolCall
from ..models.tool import ToolMetadata
from ..utils.sanitize import sanitize_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


@runtime_checkable
class LLMClient(Protocol):
    """What the agent engine needs from a language model transport."""

    async def chat(
        self,
        messages: list[Message],
        tools: Optional[list[ToolMetadata]] = None,
        streaming: bool = False,
    ) -> LLMResponse: ...

    def chat_stream(
        self,
        messages: list[Message],
        tools: Optional[list[ToolMetadata]] = None,
    ) -> AsyncIterator[StreamChunk]: ...


async def accumulate_stream(chunks: AsyncIterator[StreamChunk]) -> LLMResponse:
    """Fold a finite chunk sequence into one LLMResponse.

    Tool call fragments are merged by their ``index``: the id and name arrive
    once, the JSON arguments arrive in pieces that are concatenated.
    """
    content_parts: list[str] = []
    partial_calls: dict[int, dict] = {}
    usage = None

    async with aclosing(chunks) as stream:
        async for chunk in stream:
            if chunk.content:
                content_parts.append(chunk.content)
            for delta in chunk.tool_calls or []:
                call = partial_calls.setdefault(delta.index, {"id": "", "name": "", "arguments": ""})
                if delta.id:
                    call["id"] = delta.id
                if delta.function is not None:
                    if delta.function.name:
                        call["name"] += delta.function.name
                    if delta.function.arguments:
                        call["arguments"] += delta.function.arguments
            if chunk.usage is not None:
                usage = chunk.usage
            if chunk.done:
                break

    tool_calls = [
        ToolCall(id=call["id"], function=FunctionCall(name=call["name"], arguments=call["arguments"]))
        for _, call in sorted(partial_calls.items())
        if call["id"] and call["name"]
    ]
    return LLMResponse(content="".join(content_parts), tool_calls=tool_calls or None, usage=usage)


def is_retryable(error: Exception) -> bool:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS
    return isinstance(error, (httpx.TimeoutException, httpx.NetworkError))


def describe_http_error(error: Exception) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        body = ""
        try:
            body = error.response.text
        except httpx.ResponseNotRead:
            pass
        return f"{error.response.status_code} | {body}".rstrip(" |")
    return str(error) or type(error).__name__


class BaseLLMClient:
    """Shared config handling, retries and streaming normalization."""

    name: str = "base"
    RATE_LIMIT_DELAY_SECONDS: float = 30

    def __init__(self, config: AgentTreeConfig):
        self.config = config
        self.max_attempts = max(config.retry_attempts, 1)
        self.retry_delay = config.retry_delay_seconds

    async def complete(
        self,
        messages: list[Message],
        tools: Optional[list[ToolMetadata]] = None,
    ) -> LLMResponse:
        raise NotImplementedError

    def chat_stream(
        self,
        messages: list[Message],
        tools: Optional[list[ToolMetadata]] = None,
    ) -> AsyncIterator[StreamChunk]:
        raise NotImplementedError

    async def chat(
        self,
        messages: list[Message],
        tools: Optional[list[ToolMetadata]] = None,
        streaming: bool = False,
    ) -> LLMResponse:
        if streaming:
            try:
                return await accumulate_stream(self.chat_stream(messages, tools))
            except httpx.HTTPError as e:
                raise self._transport_error(e) from e
        return await self.with_retry(lambda: self.complete(messages, tools))

    async def with_retry(self, call: Callable[[], Awaitable[T]]) -> T:
        """Run ``call`` retrying rate limits, 5xx and timeouts with backoff."""
        rate_limit_max = max(self.max_attempts, 5)
        attempt = 0

        while True:
            attempt += 1
            try:
                return await call()
            except httpx.HTTPError as e:
                is_rate_limit = (
                    isinstance(e, httpx.HTTPStatusError) and e.response.status_code == 429
                )
                effective_max = rate_limit_max if is_rate_limit else self.max_attempts
                if not is_retryable(e) or attempt >= effective_max:
                    raise self._transport_error(e) from e

                # Rate limits: 30s base. Others: standard backoff.
                base_delay = self.RATE_LIMIT_DELAY_SECONDS if is_rate_limit else self.retry_delay
                wait_time = base_delay * min(attempt, 3)
                logger.warning(
                    "%s call failed (%s), retry %d/%d in %.1fs",
                    self.name, describe_http_error(e)[:200], attempt, effective_max - 1, wait_time,
                )
                await asyncio.sleep(wait_time)

    def _transport_error(self, error: Exception) -> TransportError:
        message = sanitize_error(describe_http_error(error), secrets=(self.config.api_key or "",))
        return TransportError(f"{self.name} request failed: {message}")


def get_llm_client(config: AgentTreeConfig) -> BaseLLMClient:
    """Factory for the default transport (any OpenAI-compatible endpoint)."""
    from .openai_provider import OpenAIClient

    return OpenAIClient(config)
