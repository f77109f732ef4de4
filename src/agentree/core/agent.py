"""AgentNode: the recursive agent execution engine.

State machine::

    CREATED --execute()--> RUNNING --stopAgent / implicit completion--> COMPLETED
                              |
                              +--uncaught error--> ERRORED

Each step offers the model its tools, sends the whole conversation, appends
the reply, and then runs the requested tool calls one at a time in order.
``createAgent`` builds a child node one level deeper and awaits its whole
subtree before the next call starts. No two steps, tools or siblings ever
run concurrently.
"""

from __future__ import annotations

import inspect
import json
import logging
import time
import uuid
from enum import Enum
from typing import Any, Optional, Union

from pydantic import ValidationError

from ..models.agent import AgentResult
from ..models.config import AgentTreeConfig
from ..models.events import (
    AgentEventData,
    base_event_data,
    child_agent_event_data,
    context_load_event_data,
    error_event_data,
    llm_call_event_data,
    result_event_data,
    utc_timestamp,
)
from ..models.messages import LLMResponse, Message, Role, ToolCall
from ..models.tool import ToolMetadata
from ..output.base import EventSink, NullSink
from ..output.recorder import OutputRecorder
from ..providers.base import LLMClient, get_llm_client
from ..tools.builtins import (
    BUILTIN_TOOL_NAMES,
    CREATE_AGENT,
    CREATE_AGENT_METADATA,
    STOP_ACKNOWLEDGEMENT,
    STOP_AGENT,
    STOP_AGENT_METADATA,
    CreateAgentParams,
    StopAgentParams,
)
from ..tools.defaults import expand_tool_names
from ..tools.registry import ToolDescriptor, ToolRegistry
from .config import merge, validate
from .errors import (
    AgentTreeError,
    ConfigurationError,
    DepthLimitError,
    InvariantViolation,
    StepLimitError,
    ToolExecutionError,
    ToolNotFoundError,
    TransportError,
)
from .task import Task

logger = logging.getLogger(__name__)

ToolReference = Union[str, ToolDescriptor]


class AgentState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    COMPLETED = "completed"
    ERRORED = "errored"


class AgentNode:
    def __init__(
        self,
        name: str,
        task: str,
        context: Optional[list[str]] = None,
        tools: Optional[list[ToolReference]] = None,
        config: Union[dict, AgentTreeConfig, None] = None,
        registry: Optional[ToolRegistry] = None,
        llm_client: Optional[LLMClient] = None,
        event_sink: Optional[EventSink] = None,
        parent_id: Optional[str] = None,
        depth: int = 0,
        system_prompt: Optional[str] = None,
        agent_id: Optional[str] = None,
    ):
        self.id = agent_id or str(uuid.uuid4())
        self.config = merge(config)
        validate(self.config)

        if depth < 0 or depth > self.config.max_depth:
            raise DepthLimitError(self.config.max_depth)

        self.task = Task(name, task, context, system_prompt)
        self.registry = registry if registry is not None else ToolRegistry()
        self.tool_names = expand_tool_names(self._resolve_tool_references(tools or []))
        self.parent_id = parent_id
        self.depth = depth
        self.llm_client = llm_client if llm_client is not None else get_llm_client(self.config)
        self.event_sink = event_sink if event_sink is not None else self._default_sink()

        self.messages: list[Message] = []
        self.children: list[AgentNode] = []
        self.state = AgentState.CREATED
        self.result: Optional[AgentResult] = None
        self.steps = 0
        self._completed = False

    @property
    def name(self) -> str:
        return self.task.name

    @property
    def is_completed(self) -> bool:
        return self._completed

    def __repr__(self) -> str:
        return f"AgentNode(name={self.name!r}, depth={self.depth}, state={self.state.value})"

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def _resolve_tool_references(self, tools: list[ToolReference]) -> list[str]:
        """Tool names stay as-is; descriptors are registered on the shared registry."""
        names: list[str] = []
        for ref in tools:
            if isinstance(ref, str):
                names.append(ref)
            elif isinstance(ref, ToolDescriptor):
                names.append(self.registry.add(ref))
            else:
                raise ConfigurationError(f"Invalid tool reference: {ref!r}")
        return names

    def _default_sink(self) -> EventSink:
        if not self.config.output_file:
            return NullSink()
        return OutputRecorder(
            self.config.output_folder,
            agent_id=self.id,
            agent_name=self.name,
            task=self.task.description,
            depth=self.depth,
            parent_id=self.parent_id,
        )

    def _emit(self, method: str, *args: Any) -> None:
        try:
            getattr(self.event_sink, method)(*args)
        except Exception as e:
            logger.warning("Event sink %s failed for agent %s: %s", method, self.id, e)

    def _event_data(self) -> AgentEventData:
        return AgentEventData(**base_event_data(self))

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self) -> AgentResult:
        """Run this agent (and its subtree) to completion.

        Never raises for agent-level failures: errors come back as an
        AgentResult with ``success=False``.
        """
        if self.state != AgentState.CREATED:
            if self.result is not None:
                return self.result
            return self._failure_result(InvariantViolation("Agent is already running"), 0)

        start = time.monotonic()
        self.state = AgentState.RUNNING
        logger.debug("Agent %s (%s) started at depth %d", self.name, self.id, self.depth)
        self._emit("record_start", self._event_data())

        try:
            await self.task.load_context()
            self._emit("record_context_loaded", context_load_event_data(self, self.task.context))

            self._append_message(Message(role=Role.SYSTEM, content=self.task.get_system_prompt()))
            self._append_message(Message(role=Role.USER, content=self.task.get_user_prompt()))

            while not self._completed:
                if self.config.max_steps is not None and self.steps >= self.config.max_steps:
                    raise StepLimitError(self.config.max_steps)
                await self._execution_step()

            if self.result is None:
                raise InvariantViolation("Agent completed without setting result")

            self.result.execution_time = _elapsed_ms(start)
            self.state = AgentState.COMPLETED
        except Exception as e:
            logger.error("Agent %s (%s) failed: %s", self.name, self.id, e)
            self._completed = True
            self.result = self._failure_result(e, _elapsed_ms(start))
            self.state = AgentState.ERRORED
            self._emit("record_error", error_event_data(self, e))

        self._emit("record_completion", result_event_data(self, self.result))
        return self.result

    async def _execution_step(self) -> None:
        self.steps += 1
        tools = self.get_available_tools()
        self._emit(
            "record_llm_call",
            llm_call_event_data(self, len(self.messages), [t.name for t in tools]),
        )

        try:
            response = await self.llm_client.chat(self.messages, tools, self.config.streaming)
        except AgentTreeError:
            raise
        except Exception as e:
            raise TransportError(str(e) or type(e).__name__) from e

        self._append_message(
            Message(role=Role.ASSISTANT, content=response.content, tool_calls=response.tool_calls or None)
        )

        if response.tool_calls:
            self._emit("record_tool_calls", response.tool_calls)
            await self._handle_tool_calls(response.tool_calls)
        elif self._is_implicit_completion(response):
            self._complete(response.content, success=True)

    @staticmethod
    def _is_implicit_completion(response: LLMResponse) -> bool:
        """A reply with text and no tool calls is the agent's final answer."""
        return not response.tool_calls and bool(response.content.strip())

    def _append_message(self, message: Message) -> None:
        self.messages.append(message)
        self._emit("record_message", message)

    def _complete(self, result: str, success: bool = True) -> None:
        if self._completed:
            raise InvariantViolation("Agent already completed")
        self._completed = True
        self.result = AgentResult(
            success=success,
            result=result,
            children=self._resolved_children(),
            agent_name=self.name,
            timestamp=utc_timestamp(),
            execution_time=0,
        )

    def _resolved_children(self) -> list[AgentResult]:
        return [child.result for child in self.children if child.result is not None]

    def _failure_result(self, error: BaseException, execution_time: float) -> AgentResult:
        return AgentResult(
            success=False,
            result="",
            error=str(error) or type(error).__name__,
            children=self._resolved_children(),
            agent_name=self.name,
            timestamp=utc_timestamp(),
            execution_time=execution_time,
        )

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    def get_available_tools(self) -> list[ToolMetadata]:
        tools: list[ToolMetadata] = []
        if self.depth < self.config.max_depth:
            tools.append(CREATE_AGENT_METADATA)
        tools.append(STOP_AGENT_METADATA)
        tools.extend(self.registry.get_all_metadata(self._user_tool_names()))
        return tools

    def _user_tool_names(self) -> list[str]:
        return [n for n in self.tool_names if n not in BUILTIN_TOOL_NAMES]

    async def _handle_tool_calls(self, tool_calls: list[ToolCall]) -> None:
        for tool_call in tool_calls:
            if self._completed:
                logger.warning(
                    "Agent %s skipped tool call %s issued after stopAgent",
                    self.name, tool_call.function.name,
                )
                continue

            try:
                output = await self._execute_tool_call(tool_call)
                content = json.dumps(output, default=str)
            except DepthLimitError:
                raise
            except Exception as e:
                logger.info("Tool %s failed for agent %s: %s", tool_call.function.name, self.name, e)
                content = json.dumps({"error": str(e) or type(e).__name__})

            self._append_message(Message(role=Role.TOOL, content=content, tool_call_id=tool_call.id))

    async def _execute_tool_call(self, tool_call: ToolCall) -> Any:
        name = tool_call.function.name
        try:
            args = json.loads(tool_call.function.arguments or "{}")
        except json.JSONDecodeError as e:
            raise ToolExecutionError(f"Invalid JSON arguments for tool '{name}': {e}") from e
        if not isinstance(args, dict):
            raise ToolExecutionError(f"Arguments for tool '{name}' must be a JSON object")

        if name == CREATE_AGENT:
            return await self._handle_create_agent(args)
        if name == STOP_AGENT:
            return self._handle_stop_agent(args)

        descriptor = self.registry.get(name)
        if descriptor is None:
            raise ToolNotFoundError(name)

        try:
            result = descriptor.executor(args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            if descriptor.error_formatter is None:
                raise
            return descriptor.error_formatter(e)
        return result

    async def _handle_create_agent(self, args: dict) -> str:
        if self.depth >= self.config.max_depth:
            raise DepthLimitError(self.config.max_depth)
        try:
            params = CreateAgentParams.model_validate(args)
        except ValidationError as e:
            raise ToolExecutionError(f"Invalid arguments for tool '{CREATE_AGENT}': {e}") from e

        child_id = str(uuid.uuid4())
        child_data = child_agent_event_data(self, child_id, params.name, params.task)
        try:
            child_sink = self.event_sink.child(child_data)
        except Exception as e:
            logger.warning("Could not derive event sink for child %s: %s", child_id, e)
            child_sink = NullSink()

        child = AgentNode(
            name=params.name,
            task=params.task,
            context=params.context,
            tools=params.tools,
            config=self.config,
            registry=self.registry,
            llm_client=self.llm_client,
            event_sink=child_sink,
            parent_id=self.id,
            depth=self.depth + 1,
            system_prompt=params.system_prompt,
            agent_id=child_id,
        )
        self._emit("record_child_created", child_data)

        self.children.append(child)
        child_result = await child.execute()

        if child_result.success:
            return f'Child agent "{params.name}" completed with result: {child_result.result}'
        return f'Child agent "{params.name}" failed: {child_result.error}'

    def _handle_stop_agent(self, args: dict) -> str:
        try:
            params = StopAgentParams.model_validate(args)
        except ValidationError as e:
            raise ToolExecutionError(f"Invalid arguments for tool '{STOP_AGENT}': {e}") from e
        self._complete(params.result, params.success)
        return STOP_ACKNOWLEDGEMENT


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 3)
