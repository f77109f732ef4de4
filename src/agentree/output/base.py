"""Event sink protocol: where agents report their lifecycle.

Sinks are fire-and-forget from the agent's point of view. The agent guards
every call, and CompositeSink guards each of its members, so a failing sink
never interrupts execution.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from ..models.events import (
    AgentErrorEventData,
    AgentEventData,
    AgentResultEventData,
    ChildAgentEventData,
    ContextLoadEventData,
    LLMCallEventData,
)
from ..models.messages import Message, ToolCall

logger = logging.getLogger(__name__)


@runtime_checkable
class EventSink(Protocol):
    def record_start(self, data: AgentEventData) -> None: ...

    def record_context_loaded(self, data: ContextLoadEventData) -> None: ...

    def record_llm_call(self, data: LLMCallEventData) -> None: ...

    def record_message(self, message: Message) -> None: ...

    def record_tool_calls(self, tool_calls: list[ToolCall]) -> None: ...

    def record_child_created(self, data: ChildAgentEventData) -> None: ...

    def record_completion(self, data: AgentResultEventData) -> None: ...

    def record_error(self, data: AgentErrorEventData) -> None: ...

    def child(self, data: ChildAgentEventData) -> "EventSink":
        """Return the sink the new child agent described by ``data`` reports to."""
        ...


class NullSink:
    def record_start(self, data):
        pass

    def record_context_loaded(self, data):
        pass

    def record_llm_call(self, data):
        pass

    def record_message(self, message):
        pass

    def record_tool_calls(self, tool_calls):
        pass

    def record_child_created(self, data):
        pass

    def record_completion(self, data):
        pass

    def record_error(self, data):
        pass

    def child(self, data) -> "NullSink":
        return self


class CompositeSink:
    """Fan every event out to several sinks, isolating their failures."""

    def __init__(self, sinks: list[EventSink]):
        self.sinks = list(sinks)

    def _fan_out(self, method: str, *args) -> None:
        for sink in self.sinks:
            try:
                getattr(sink, method)(*args)
            except Exception as e:
                logger.warning("Event sink %s failed in %s: %s", type(sink).__name__, method, e)

    def record_start(self, data):
        self._fan_out("record_start", data)

    def record_context_loaded(self, data):
        self._fan_out("record_context_loaded", data)

    def record_llm_call(self, data):
        self._fan_out("record_llm_call", data)

    def record_message(self, message):
        self._fan_out("record_message", message)

    def record_tool_calls(self, tool_calls):
        self._fan_out("record_tool_calls", tool_calls)

    def record_child_created(self, data):
        self._fan_out("record_child_created", data)

    def record_completion(self, data):
        self._fan_out("record_completion", data)

    def record_error(self, data):
        self._fan_out("record_error", data)

    def child(self, data) -> "CompositeSink":
        children: list[EventSink] = []
        for sink in self.sinks:
            try:
                children.append(sink.child(data))
            except Exception as e:
                logger.warning("Event sink %s could not derive a child sink: %s", type(sink).__name__, e)
        return CompositeSink(children)
