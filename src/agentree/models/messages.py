"""Conversation and LLM wire models (OpenAI function-calling shape)."""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class FunctionCall(BaseModel):
    name: str
    arguments: str = ""


class ToolCall(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: FunctionCall


class Message(BaseModel):
    role: Role
    content: str = ""
    tool_calls: Optional[list[ToolCall]] = None
    tool_call_id: Optional[str] = None

    def to_wire(self) -> dict:
        """Render the message the way chat completion endpoints expect it."""
        data: dict = {"role": self.role.value, "content": self.content}
        if self.role == Role.ASSISTANT and self.tool_calls:
            data["tool_calls"] = [tc.model_dump() for tc in self.tool_calls]
        if self.role == Role.TOOL:
            data["tool_call_id"] = self.tool_call_id
        return data


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    content: str = ""
    tool_calls: Optional[list[ToolCall]] = None
    usage: Optional[Usage] = None


class FunctionCallDelta(BaseModel):
    name: Optional[str] = None
    arguments: Optional[str] = None


class ToolCallDelta(BaseModel):
    """Fragment of a tool call as emitted by a streaming response."""

    index: int = 0
    id: Optional[str] = None
    type: Optional[str] = None
    function: Optional[FunctionCallDelta] = None


class StreamChunk(BaseModel):
    content: Optional[str] = None
    tool_calls: Optional[list[ToolCallDelta]] = None
    usage: Optional[Usage] = None
    done: bool = False
