"""Lifecycle event payloads and the helpers that shape them from an agent."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AgentEventData(BaseModel):
    id: str
    name: str
    task: str
    depth: int
    parent_id: Optional[str] = None
    timestamp: str


class AgentResultEventData(AgentEventData):
    result: dict[str, Any]
    execution_time: float
    success: bool


class AgentErrorEventData(AgentEventData):
    error: str
    error_type: str


class LLMCallEventData(AgentEventData):
    message_count: int
    available_tools: list[str]
    model: Optional[str] = None


class ContextCounts(BaseModel):
    file_count: int = 0
    url_count: int = 0
    text_count: int = 0


class ContextLoadEventData(AgentEventData):
    context: ContextCounts


class ChildAgentEventData(AgentEventData):
    parent_name: str
    child_id: str
    child_name: str
    child_task: str


# Builders take any object exposing id, name, task, depth, parent_id and config.


def base_event_data(agent) -> dict:
    return {
        "id": agent.id,
        "name": agent.name,
        "task": agent.task.description,
        "depth": agent.depth,
        "parent_id": agent.parent_id,
        "timestamp": utc_timestamp(),
    }


def result_event_data(agent, result) -> AgentResultEventData:
    return AgentResultEventData(
        **base_event_data(agent),
        result=result.model_dump(),
        execution_time=result.execution_time,
        success=result.success,
    )


def error_event_data(agent, error: BaseException) -> AgentErrorEventData:
    return AgentErrorEventData(
        **base_event_data(agent),
        error=str(error) or type(error).__name__,
        error_type=type(error).__name__,
    )


def llm_call_event_data(agent, message_count: int, available_tools: list[str]) -> LLMCallEventData:
    return LLMCallEventData(
        **base_event_data(agent),
        message_count=message_count,
        available_tools=available_tools,
        model=agent.config.model,
    )


def context_load_event_data(agent, context) -> ContextLoadEventData:
    return ContextLoadEventData(
        **base_event_data(agent),
        context=ContextCounts(
            file_count=len(context.files),
            url_count=len(context.urls),
            text_count=len(context.text),
        ),
    )


def child_agent_event_data(parent, child_id: str, child_name: str, child_task: str) -> ChildAgentEventData:
    return ChildAgentEventData(
        id=child_id,
        name=child_name,
        task=child_task,
        depth=parent.depth + 1,
        parent_id=parent.id,
        timestamp=utc_timestamp(),
        parent_name=parent.name,
        child_id=child_id,
        child_name=child_name,
        child_task=child_task,
    )
